"""Salt Codec.

The order salt carries both the commitment and the extension hash:

    salt = (commitment mod 2^96) << 160 | extensionHash

Top 96 bits hold the truncated commitment, bottom 160 bits the low 160 bits
of keccak256(extension), which is what the host protocol checks against the
order's extension. The full commitment is never recovered from the salt;
it can only be checked for consistency against a separately held value.
"""

from typing import List, Tuple

from eth_utils import keccak

from .types import PackedSaltData
from ..errors import ExtensionHashTooLarge, StructuralError
from ..utils import BytesLike, as_bytes
from ..zk.types import ValidationResult

COMMITMENT_BITS = 96
EXTENSION_HASH_BITS = 160
SALT_BITS = COMMITMENT_BITS + EXTENSION_HASH_BITS

COMMITMENT_MASK = (1 << COMMITMENT_BITS) - 1
EXTENSION_HASH_MASK = (1 << EXTENSION_HASH_BITS) - 1
MAX_SALT = (1 << SALT_BITS) - 1


def truncate_commitment(commitment: int) -> int:
    """Low 96 bits of a commitment."""
    return commitment & COMMITMENT_MASK


def validate_extension_hash(extension_hash: int) -> ValidationResult:
    errors: List[str] = []
    if extension_hash < 0:
        errors.append("Extension hash must be non-negative")
    elif extension_hash > EXTENSION_HASH_MASK:
        errors.append(
            f"Extension hash exceeds {EXTENSION_HASH_BITS}-bit limit: {hex(extension_hash)}"
        )
    return ValidationResult.from_lists(errors)


def validate_salt_structure(salt: int) -> ValidationResult:
    errors: List[str] = []
    if salt < 0:
        errors.append("Salt must be non-negative")
    elif salt > MAX_SALT:
        errors.append(f"Salt exceeds {SALT_BITS}-bit limit: {hex(salt)}")
    return ValidationResult.from_lists(errors)


def pack(commitment: int, extension_hash: int) -> PackedSaltData:
    """Pack a commitment and an extension hash into a salt.

    The commitment is truncated to 96 bits without complaint. Order
    building surfaces the reduced collision margin as a warning.

    Args:
        commitment: Full commitment
        extension_hash: Extension hash, must fit in 160 bits

    Returns:
        PackedSaltData

    Raises:
        ExtensionHashTooLarge: If extension_hash >= 2^160 or negative
    """
    validation = validate_extension_hash(extension_hash)
    if not validation.is_valid:
        raise ExtensionHashTooLarge(
            f"Invalid extension hash: {', '.join(validation.errors)}"
        )
    if commitment < 0:
        raise StructuralError(f"Commitment must be non-negative: {commitment}")

    truncated = truncate_commitment(commitment)
    salt = (truncated << EXTENSION_HASH_BITS) | (extension_hash & EXTENSION_HASH_MASK)

    return PackedSaltData(
        salt=salt,
        commitment=commitment,
        truncated_commitment=truncated,
        extension_hash=extension_hash,
    )


def unpack(salt: int) -> Tuple[int, int]:
    """Split a salt into ``(truncated_commitment, extension_hash)``.

    Raises:
        StructuralError: If the salt is outside [0, 2^256)
    """
    validation = validate_salt_structure(salt)
    if not validation.is_valid:
        raise StructuralError(f"Invalid salt: {', '.join(validation.errors)}")
    return (salt >> EXTENSION_HASH_BITS) & COMMITMENT_MASK, salt & EXTENSION_HASH_MASK


def verify_round_trip(commitment: int, extension_hash: int) -> bool:
    """Pack then unpack and compare against the truncated inputs."""
    try:
        packed = pack(commitment, extension_hash)
    except StructuralError:
        return False
    truncated, unpacked_hash = unpack(packed.salt)
    return truncated == truncate_commitment(commitment) and unpacked_hash == extension_hash


def compute_extension_hash(extension: BytesLike) -> int:
    """Low 160 bits of keccak256 over the extension bytes."""
    return int.from_bytes(keccak(as_bytes(extension, "extension")), "big") & EXTENSION_HASH_MASK


def extension_hash_from_hex(extension_hash_hex: str) -> int:
    """Parse a 160-bit extension hash from hex.

    Raises:
        ExtensionHashTooLarge: If the hex has more than 40 digits
    """
    digits = extension_hash_hex[2:] if extension_hash_hex.startswith("0x") else extension_hash_hex
    if len(digits) > EXTENSION_HASH_BITS // 4:
        raise ExtensionHashTooLarge(
            f"Extension hash hex too long: {len(digits)} chars > 40 chars (160-bit max)"
        )
    try:
        return int(digits or "0", 16)
    except ValueError as e:
        raise StructuralError(f"Invalid extension hash hex: {extension_hash_hex}") from e


def create_from_extension_bytes(commitment: int, extension: BytesLike) -> PackedSaltData:
    """Pack a salt from a commitment and the raw extension bytes."""
    return pack(commitment, compute_extension_hash(extension))


def format_packed_salt(data: PackedSaltData) -> str:
    return (
        f"PackedSalt({hex(data.salt)}) = "
        f"commitment({hex(data.truncated_commitment)}) << 160 | "
        f"extensionHash({hex(data.extension_hash)})"
    )
