"""Commitment Engine.

Binds a maker's secret price and amount thresholds to a public commitment
``Poseidon(secretPrice, secretAmount, nonce)``. The circuit recomputes the
same hash, so the commitment is the link between the order and its proof.
"""

import secrets
from typing import List, Optional

from .poseidon import poseidon
from .types import SNARK_SCALAR_FIELD, CommitmentData, SecretParameters, ValidationResult
from ..errors import SecretParameterError

# Circuit range checks operate on 64-bit values
MAX_PRICE = 2**64 - 1
MAX_AMOUNT = 2**64 - 1
MAX_NONCE = 2**64 - 1
MIN_PRICE = 1
MIN_AMOUNT = 1
MIN_NONCE = 0

NONCE_BYTES = 8


def commit(secret_price: int, secret_amount: int, nonce: int) -> int:
    """Compute the commitment for a set of secret parameters.

    Pure and deterministic: identical inputs always give the identical
    commitment. Inputs must already be non-negative and inside the scalar
    field; see ``validate_secret_parameters``.
    """
    return poseidon([secret_price, secret_amount, nonce])


def generate_nonce() -> int:
    """Generate a cryptographically secure 64-bit nonce."""
    return int.from_bytes(secrets.token_bytes(NONCE_BYTES), "big") % (MAX_NONCE + 1)


def validate_secret_parameters(params: SecretParameters) -> ValidationResult:
    """Check that secret parameters are inside the circuit's accepted ranges."""
    errors: List[str] = []

    if params.secret_price < MIN_PRICE:
        errors.append(f"Secret price too low: {params.secret_price} < {MIN_PRICE}")
    if params.secret_price > MAX_PRICE:
        errors.append(f"Secret price too high: {params.secret_price} > {MAX_PRICE}")

    if params.secret_amount < MIN_AMOUNT:
        errors.append(f"Secret amount too low: {params.secret_amount} < {MIN_AMOUNT}")
    if params.secret_amount > MAX_AMOUNT:
        errors.append(f"Secret amount too high: {params.secret_amount} > {MAX_AMOUNT}")

    if params.nonce < MIN_NONCE:
        errors.append(f"Nonce too low: {params.nonce} < {MIN_NONCE}")
    if params.nonce > MAX_NONCE:
        errors.append(f"Nonce too high: {params.nonce} > {MAX_NONCE}")

    return ValidationResult.from_lists(errors)


def calculate_commitment(secret_price: int, secret_amount: int, nonce: int) -> int:
    """Validate the parameters, then compute the commitment.

    Raises:
        SecretParameterError: If any parameter is out of range
    """
    validation = validate_secret_parameters(
        SecretParameters(secret_price=secret_price, secret_amount=secret_amount, nonce=nonce)
    )
    if not validation.is_valid:
        raise SecretParameterError(
            f"Invalid secret parameters: {', '.join(validation.errors)}"
        )
    return commit(secret_price, secret_amount, nonce)


def create_commitment(
    secret_price: int, secret_amount: int, nonce: Optional[int] = None
) -> CommitmentData:
    """Create a commitment, generating a fresh nonce when none is given."""
    final_nonce = generate_nonce() if nonce is None else nonce
    commitment = calculate_commitment(secret_price, secret_amount, final_nonce)
    return CommitmentData(
        commitment=commitment,
        secret_params=SecretParameters(
            secret_price=secret_price,
            secret_amount=secret_amount,
            nonce=final_nonce,
        ),
    )


def validate_commitment(commitment: int, params: SecretParameters) -> ValidationResult:
    """Check that ``commitment`` was produced from ``params``."""
    validation = validate_secret_parameters(params)
    if not validation.is_valid:
        return validation

    expected = commit(params.secret_price, params.secret_amount, params.nonce)
    if commitment != expected:
        return ValidationResult.from_lists(
            [f"Commitment mismatch: expected {expected}, got {commitment}"]
        )
    return ValidationResult()


def is_commitment_safe(commitment: int) -> bool:
    """True when the value is a canonical scalar field element."""
    return 0 <= commitment < SNARK_SCALAR_FIELD


def format_commitment_data(data: CommitmentData) -> str:
    """Render commitment data for maker-local debugging output."""
    params = data.secret_params
    return (
        f"Commitment({data.commitment}) = "
        f"price({params.secret_price}) + "
        f"amount({params.secret_amount}) + "
        f"nonce({params.nonce})"
    )
