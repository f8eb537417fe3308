"""Tests for the salt codec."""

import pytest
from eth_utils import keccak

from hidden_orders_sdk.errors import ExtensionHashTooLarge, StructuralError
from hidden_orders_sdk.order import (
    create_from_extension_bytes,
    compute_extension_hash,
    extension_hash_from_hex,
    format_packed_salt,
    pack,
    truncate_commitment,
    unpack,
    validate_salt_structure,
    verify_round_trip,
)
from hidden_orders_sdk.zk import SNARK_SCALAR_FIELD

LARGE_COMMITMENT = SNARK_SCALAR_FIELD - 12345
EXTENSION_HASH = 0x1234567890ABCDEF1234567890ABCDEF12345678


class TestPack:
    """Tests for packing and unpacking salts."""

    def test_pack_layout(self):
        """Test that the commitment sits above bit 160 and the hash below."""
        packed = pack(0xABC, EXTENSION_HASH)
        assert packed.salt == (0xABC << 160) | EXTENSION_HASH
        assert packed.truncated_commitment == 0xABC
        assert packed.commitment == 0xABC

    def test_round_trip(self):
        """Test that unpack inverts pack up to truncation."""
        for commitment in (0, 1, 2**96 - 1, 2**96, LARGE_COMMITMENT):
            for extension_hash in (0, 1, EXTENSION_HASH, 2**160 - 1):
                packed = pack(commitment, extension_hash)
                assert unpack(packed.salt) == (truncate_commitment(commitment), extension_hash)
                assert verify_round_trip(commitment, extension_hash)

    def test_large_commitment_truncated_silently(self):
        """Test that commitments wider than 96 bits are truncated without error."""
        packed = pack(LARGE_COMMITMENT, EXTENSION_HASH)
        assert packed.truncated_commitment == LARGE_COMMITMENT % 2**96
        assert packed.commitment == LARGE_COMMITMENT
        assert packed.salt < 2**256

    def test_truncation_identity_below_96_bits(self):
        """Test that small commitments are unchanged by truncation."""
        assert truncate_commitment(2**96 - 1) == 2**96 - 1
        assert truncate_commitment(12345) == 12345
        assert truncate_commitment(2**96) == 0

    def test_pack_rejects_oversized_extension_hash(self):
        """Test that extension hashes of 2^160 or more are rejected."""
        with pytest.raises(ExtensionHashTooLarge):
            pack(1, 2**160)
        with pytest.raises(ExtensionHashTooLarge):
            pack(1, 2**200)

    def test_pack_rejects_negative_extension_hash(self):
        """Test that negative hashes are rejected."""
        with pytest.raises(ExtensionHashTooLarge):
            pack(1, -1)

    def test_verify_round_trip_false_for_oversized_hash(self):
        """Test that round-trip verification reports rejection as False."""
        assert verify_round_trip(1, 2**160) is False

    def test_unpack_any_256_bit_value(self):
        """Test that unpack is total over uint256."""
        assert unpack(2**256 - 1) == (2**96 - 1, 2**160 - 1)
        assert unpack(0) == (0, 0)

    def test_unpack_rejects_out_of_range(self):
        """Test that values outside uint256 are structural errors."""
        with pytest.raises(StructuralError):
            unpack(2**256)
        with pytest.raises(StructuralError):
            unpack(-1)

    def test_validate_salt_structure(self):
        """Test salt range validation."""
        assert validate_salt_structure(2**256 - 1).is_valid
        assert not validate_salt_structure(2**256).is_valid


class TestExtensionHash:
    """Tests for extension hash helpers."""

    def test_compute_extension_hash(self):
        """Test that the hash is the low 160 bits of keccak256."""
        extension = b"\x01\x02\x03"
        expected = int.from_bytes(keccak(extension), "big") % 2**160
        assert compute_extension_hash(extension) == expected
        assert compute_extension_hash("0x010203") == expected

    def test_compute_extension_hash_rejects_bad_hex(self):
        """Test that odd-length hex is rejected."""
        with pytest.raises(StructuralError):
            compute_extension_hash("0x123")

    def test_create_from_extension_bytes(self):
        """Test the pack-from-bytes composition."""
        extension = b"hidden order extension"
        packed = create_from_extension_bytes(LARGE_COMMITMENT, extension)
        assert packed.extension_hash == compute_extension_hash(extension)
        assert unpack(packed.salt)[1] == compute_extension_hash(extension)

    def test_extension_hash_from_hex(self):
        """Test parsing 160-bit hashes from hex."""
        assert extension_hash_from_hex("0x" + "ff" * 20) == 2**160 - 1
        assert extension_hash_from_hex("abc") == 0xABC

    def test_extension_hash_from_hex_too_long(self):
        """Test that more than 40 hex digits are rejected."""
        with pytest.raises(ExtensionHashTooLarge):
            extension_hash_from_hex("0x" + "00" * 21)

    def test_format_packed_salt(self):
        """Test the debug rendering."""
        text = format_packed_salt(pack(0xABC, 0xDEF))
        assert "commitment(0xabc) << 160" in text
        assert "extensionHash(0xdef)" in text
