"""Zero-knowledge primitives for hidden-parameter orders.

Key components:
- Poseidon commitment to the maker's secret price and amount thresholds
- Proving backends (snarkjs CLI, remote HTTP prover)
- Proof Bridge: verifier-layout ABI encoding of Groth16 proofs

Example usage:
    ```python
    from hidden_orders_sdk.zk import (
        create_commitment,
        generate_proof,
        ProofInputs,
        SnarkjsProvingBackend,
    )

    data = create_commitment(secret_price=3_200_000_000, secret_amount=2 * 10**18)

    backend = SnarkjsProvingBackend("hidden_params.wasm", "hidden_params_0001.zkey")
    encoded = await generate_proof(backend, ProofInputs(
        secret_price=data.secret_params.secret_price,
        secret_amount=data.secret_params.secret_amount,
        commit=data.commitment,
        nonce=data.secret_params.nonce,
        offered_price=3_500_000_000,
        offered_amount=5 * 10**18,
    ))
    print(encoded.hex)
    ```
"""

from .types import (
    SNARK_SCALAR_FIELD,
    BN254_BASE_FIELD,
    PUBLIC_SIGNAL_NAMES,
    PUBLIC_SIGNAL_COUNT,
    PRICE_PRECISION,
    SecretParameters,
    CommitmentData,
    ProofInputs,
    Groth16Proof,
    VerifierProof,
    EncodedProof,
    ProverOutput,
    ValidationResult,
)
from .poseidon import poseidon
from .commitment import (
    MAX_PRICE,
    MAX_AMOUNT,
    MAX_NONCE,
    commit,
    generate_nonce,
    validate_secret_parameters,
    calculate_commitment,
    create_commitment,
    validate_commitment,
    is_commitment_safe,
    format_commitment_data,
)
from .proof import (
    PREDICATE_SELECTOR,
    ENCODED_PROOF_LENGTH,
    encode_proof,
    decode_proof,
    validate_proof_structure,
    validate_public_signals,
    to_verifier_proof,
    encode_predicate_call,
    decode_predicate_call,
    format_proof,
)
from .prover import (
    ProvingBackend,
    SnarkjsProvingBackend,
    HttpProvingBackend,
    validate_proof_inputs,
    check_public_signals,
    generate_proof,
)

__all__ = [
    # Types
    "SNARK_SCALAR_FIELD",
    "BN254_BASE_FIELD",
    "PUBLIC_SIGNAL_NAMES",
    "PUBLIC_SIGNAL_COUNT",
    "PRICE_PRECISION",
    "SecretParameters",
    "CommitmentData",
    "ProofInputs",
    "Groth16Proof",
    "VerifierProof",
    "EncodedProof",
    "ProverOutput",
    "ValidationResult",
    # Commitment
    "poseidon",
    "MAX_PRICE",
    "MAX_AMOUNT",
    "MAX_NONCE",
    "commit",
    "generate_nonce",
    "validate_secret_parameters",
    "calculate_commitment",
    "create_commitment",
    "validate_commitment",
    "is_commitment_safe",
    "format_commitment_data",
    # Proof Bridge
    "PREDICATE_SELECTOR",
    "ENCODED_PROOF_LENGTH",
    "encode_proof",
    "decode_proof",
    "validate_proof_structure",
    "validate_public_signals",
    "to_verifier_proof",
    "encode_predicate_call",
    "decode_predicate_call",
    "format_proof",
    # Provers
    "ProvingBackend",
    "SnarkjsProvingBackend",
    "HttpProvingBackend",
    "validate_proof_inputs",
    "check_public_signals",
    "generate_proof",
]
