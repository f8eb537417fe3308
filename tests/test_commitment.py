"""Tests for the commitment engine and Poseidon hash."""

import pytest

from hidden_orders_sdk.errors import SecretParameterError
from hidden_orders_sdk.zk import (
    MAX_NONCE,
    MAX_PRICE,
    SNARK_SCALAR_FIELD,
    SecretParameters,
    calculate_commitment,
    commit,
    create_commitment,
    format_commitment_data,
    generate_nonce,
    is_commitment_safe,
    poseidon,
    validate_commitment,
    validate_secret_parameters,
)


class TestPoseidon:
    """Tests for the Poseidon permutation."""

    def test_poseidon_deterministic(self):
        """Test that identical inputs hash identically."""
        assert poseidon([1, 2, 3]) == poseidon([1, 2, 3])

    def test_poseidon_in_scalar_field(self):
        """Test that the output is a scalar field element."""
        value = poseidon([3_200_000_000, 2 * 10**18, 42])
        assert 0 <= value < SNARK_SCALAR_FIELD

    def test_poseidon_order_sensitive(self):
        """Test that input order matters."""
        assert poseidon([1, 2, 3]) != poseidon([3, 2, 1])

    def test_poseidon_width_sensitive(self):
        """Test that a different state width gives a different hash."""
        assert poseidon([1, 2]) != poseidon([1, 2, 0])

    def test_poseidon_rejects_empty_input(self):
        """Test that at least one input is required."""
        with pytest.raises(ValueError):
            poseidon([])

    def test_poseidon_rejects_too_many_inputs(self):
        """Test the maximum supported width."""
        with pytest.raises(ValueError):
            poseidon(list(range(17)))


class TestCommit:
    """Tests for commitment computation."""

    def test_commit_deterministic(self):
        """Test that repeated calls give the same commitment."""
        assert commit(3_200_000_000, 2 * 10**18, 7) == commit(3_200_000_000, 2 * 10**18, 7)

    def test_commit_nonce_sensitivity(self):
        """Test that changing the nonce changes the commitment."""
        assert commit(3_200_000_000, 2 * 10**18, 7) != commit(3_200_000_000, 2 * 10**18, 8)

    def test_commit_price_sensitivity(self):
        """Test that changing the price changes the commitment."""
        assert commit(3_200_000_000, 2 * 10**18, 7) != commit(3_200_000_001, 2 * 10**18, 7)

    def test_calculate_commitment_matches_commit(self):
        """Test that validated computation returns the raw commitment."""
        assert calculate_commitment(100, 200, 300) == commit(100, 200, 300)

    def test_calculate_commitment_rejects_zero_price(self):
        """Test that a zero secret price is rejected."""
        with pytest.raises(SecretParameterError, match="Secret price too low"):
            calculate_commitment(0, 200, 300)

    def test_calculate_commitment_rejects_oversized_amount(self):
        """Test that amounts beyond 64 bits are rejected."""
        with pytest.raises(SecretParameterError, match="Secret amount too high"):
            calculate_commitment(100, 2**64, 300)

    def test_secret_parameter_error_is_value_error(self):
        """Test that parameter errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            calculate_commitment(-1, 200, 300)


class TestSecretParameters:
    """Tests for secret parameter validation and helpers."""

    def test_validate_secret_parameters_valid(self):
        """Test the boundaries of the accepted ranges."""
        result = validate_secret_parameters(
            SecretParameters(secret_price=MAX_PRICE, secret_amount=1, nonce=0)
        )
        assert result.is_valid
        assert result.errors == []

    def test_validate_secret_parameters_collects_errors(self):
        """Test that every violation is reported."""
        result = validate_secret_parameters(
            SecretParameters(secret_price=0, secret_amount=0, nonce=MAX_NONCE + 1)
        )
        assert not result.is_valid
        assert len(result.errors) == 3

    def test_generate_nonce_range(self):
        """Test that nonces are 64-bit values."""
        for _ in range(20):
            assert 0 <= generate_nonce() <= MAX_NONCE

    def test_generate_nonce_random(self):
        """Test that nonces differ between calls."""
        assert len({generate_nonce() for _ in range(10)}) > 1

    def test_create_commitment_with_nonce(self):
        """Test that an explicit nonce is kept."""
        data = create_commitment(100, 200, nonce=5)
        assert data.secret_params.nonce == 5
        assert data.commitment == commit(100, 200, 5)

    def test_create_commitment_generates_nonce(self):
        """Test that a nonce is generated when omitted."""
        data = create_commitment(100, 200)
        assert 0 <= data.secret_params.nonce <= MAX_NONCE
        assert data.commitment == commit(100, 200, data.secret_params.nonce)

    def test_validate_commitment(self):
        """Test matching and mismatching commitments."""
        params = SecretParameters(secret_price=100, secret_amount=200, nonce=5)
        assert validate_commitment(commit(100, 200, 5), params).is_valid

        result = validate_commitment(commit(100, 200, 6), params)
        assert not result.is_valid
        assert "Commitment mismatch" in result.errors[0]

    def test_is_commitment_safe(self):
        """Test the scalar field bound."""
        assert is_commitment_safe(0)
        assert is_commitment_safe(SNARK_SCALAR_FIELD - 1)
        assert not is_commitment_safe(SNARK_SCALAR_FIELD)
        assert not is_commitment_safe(-1)

    def test_format_commitment_data(self):
        """Test the debug rendering."""
        data = create_commitment(100, 200, nonce=5)
        text = format_commitment_data(data)
        assert text.startswith(f"Commitment({data.commitment})")
        assert "nonce(5)" in text
