"""Proof Bridge.

Turns proving-backend output into the exact byte layout the on-chain
verifier decodes, and back. Validation here is purely syntactic: element
counts, field ranges and (optionally) curve membership. Whether a proof is
actually valid is decided by the verifier contract.

Layout: ``abi.encode(uint256[2] a, uint256[2][2] b, uint256[2] c, uint256[5] signals)``,
13 static words, 416 bytes.
"""

from typing import List, Sequence, Tuple, Union

from eth_abi import decode, encode
from py_ecc import bn128
from py_ecc.fields import bn128_FQ, bn128_FQ2

from .types import (
    BN254_BASE_FIELD,
    PUBLIC_SIGNAL_COUNT,
    PUBLIC_SIGNAL_NAMES,
    SNARK_SCALAR_FIELD,
    EncodedProof,
    Groth16Proof,
    VerifierProof,
)
from ..errors import ProofFormatError, StructuralError
from ..utils import BytesLike, as_bytes, parse_int

PROOF_ABI_TYPES = ["uint256[2]", "uint256[2][2]", "uint256[2]", "uint256[5]"]
ENCODED_PROOF_LENGTH = 13 * 32

# predicate(bytes) on the hidden-parameter predicate contract
PREDICATE_SELECTOR = bytes.fromhex("6fe7b0ba")


def _coordinate(value: Union[int, str], label: str) -> int:
    try:
        number = parse_int(value, label)
    except StructuralError as e:
        raise ProofFormatError(str(e)) from e
    if not 0 <= number < BN254_BASE_FIELD:
        raise ProofFormatError(f"{label} outside the BN254 base field: {number}")
    return number


def _g1(point: Sequence[Union[int, str]], label: str) -> Tuple[int, int]:
    if point is None or len(point) not in (2, 3):
        raise ProofFormatError(
            f"Invalid {label}: must be 2 affine or 3 projective coordinates"
        )
    if len(point) == 3 and _coordinate(point[2], label) != 1:
        raise ProofFormatError(f"Invalid {label}: projective point is not normalized")
    return _coordinate(point[0], f"{label}[0]"), _coordinate(point[1], f"{label}[1]")


def _g2(
    point: Sequence[Sequence[Union[int, str]]], label: str
) -> Tuple[Tuple[int, int], Tuple[int, int]]:
    if point is None or len(point) not in (2, 3):
        raise ProofFormatError(
            f"Invalid {label}: must be 2 affine or 3 projective coordinate pairs"
        )
    for i, pair in enumerate(point):
        if pair is None or len(pair) != 2:
            raise ProofFormatError(f"Invalid {label}[{i}]: must be a pair")
    if len(point) == 3 and (
        _coordinate(point[2][0], label) != 1 or _coordinate(point[2][1], label) != 0
    ):
        raise ProofFormatError(f"Invalid {label}: projective point is not normalized")
    x = (_coordinate(point[0][0], f"{label}[0][0]"), _coordinate(point[0][1], f"{label}[0][1]"))
    y = (_coordinate(point[1][0], f"{label}[1][0]"), _coordinate(point[1][1], f"{label}[1][1]"))
    return x, y


def validate_proof_structure(proof: Groth16Proof, check_on_curve: bool = False) -> None:
    """Check element counts and field ranges of a backend proof.

    Args:
        proof: Proof as emitted by the proving backend
        check_on_curve: Also require pi_a/pi_c on G1 and pi_b on G2

    Raises:
        ProofFormatError: If the proof is malformed
    """
    a = _g1(proof.pi_a, "pi_a")
    b = _g2(proof.pi_b, "pi_b")
    c = _g1(proof.pi_c, "pi_c")

    if not check_on_curve:
        return

    for label, (x, y) in (("pi_a", a), ("pi_c", c)):
        if not bn128.is_on_curve((bn128_FQ(x), bn128_FQ(y)), bn128.b):
            raise ProofFormatError(f"{label} is not a point on G1")

    # snarkjs orders Fp2 coordinates as (c0, c1), same as py_ecc
    g2_point = (bn128_FQ2(list(b[0])), bn128_FQ2(list(b[1])))
    if not bn128.is_on_curve(g2_point, bn128.b2):
        raise ProofFormatError("pi_b is not a point on G2")


def validate_public_signals(public_signals: Sequence[Union[int, str]]) -> Tuple[int, ...]:
    """Parse and range-check the public signals.

    Returns:
        Signals as ints, in circuit order

    Raises:
        ProofFormatError: If the count or any value is invalid
    """
    if public_signals is None or len(public_signals) != PUBLIC_SIGNAL_COUNT:
        raise ProofFormatError(
            f"Invalid public signals: must be array of {PUBLIC_SIGNAL_COUNT} elements"
        )

    signals: List[int] = []
    for index, (name, raw) in enumerate(zip(PUBLIC_SIGNAL_NAMES, public_signals)):
        try:
            value = parse_int(raw, name)
        except StructuralError as e:
            raise ProofFormatError(f"Invalid public signal at index {index}: {raw}") from e
        if not 0 <= value < SNARK_SCALAR_FIELD:
            raise ProofFormatError(
                f"Public signal {name} outside the scalar field: {value}"
            )
        signals.append(value)

    if signals[0] not in (0, 1):
        raise ProofFormatError(f"Public signal valid must be 0 or 1, got {signals[0]}")

    return tuple(signals)


def to_verifier_proof(proof: Groth16Proof) -> VerifierProof:
    """Drop projective coordinates and swap G2 coordinates for the Solidity verifier."""
    a = _g1(proof.pi_a, "pi_a")
    (x0, x1), (y0, y1) = _g2(proof.pi_b, "pi_b")
    c = _g1(proof.pi_c, "pi_c")
    return VerifierProof(a=a, b=((x1, x0), (y1, y0)), c=c)


def encode_proof(
    proof: Groth16Proof,
    public_signals: Sequence[Union[int, str]],
    check_on_curve: bool = False,
) -> EncodedProof:
    """ABI-encode a proof and its public signals for the verifier.

    Args:
        proof: Proof as emitted by the proving backend
        public_signals: ``[valid, commit, nonce, offeredPrice, offeredAmount]``
        check_on_curve: Also validate curve membership of the proof points

    Returns:
        EncodedProof with the 416-byte payload

    Raises:
        ProofFormatError: If the proof or signals are malformed
    """
    validate_proof_structure(proof, check_on_curve=check_on_curve)
    signals = validate_public_signals(public_signals)
    verifier_proof = to_verifier_proof(proof)

    encoded = encode(
        PROOF_ABI_TYPES,
        [
            list(verifier_proof.a),
            [list(verifier_proof.b[0]), list(verifier_proof.b[1])],
            list(verifier_proof.c),
            list(signals),
        ],
    )
    return EncodedProof(encoded_data=encoded, proof=verifier_proof, public_signals=signals)


def decode_proof(data: BytesLike) -> EncodedProof:
    """Decode an ABI-encoded proof payload. For inspection and debugging only.

    Raises:
        ProofFormatError: If the payload is not a well-formed proof
    """
    try:
        raw = as_bytes(data, "proof data")
    except StructuralError as e:
        raise ProofFormatError(str(e)) from e

    if len(raw) != ENCODED_PROOF_LENGTH:
        raise ProofFormatError(
            f"Failed to decode proof data: expected {ENCODED_PROOF_LENGTH} bytes, got {len(raw)}"
        )

    a, b, c, signals = decode(PROOF_ABI_TYPES, raw)
    return EncodedProof(
        encoded_data=raw,
        proof=VerifierProof(
            a=(a[0], a[1]),
            b=((b[0][0], b[0][1]), (b[1][0], b[1][1])),
            c=(c[0], c[1]),
        ),
        public_signals=tuple(signals),
    )


def encode_predicate_call(proof_data: BytesLike) -> bytes:
    """Calldata for ``predicate(bytes)`` on the predicate verifier contract."""
    return PREDICATE_SELECTOR + encode(["bytes"], [as_bytes(proof_data, "proof data")])


def decode_predicate_call(calldata: BytesLike) -> bytes:
    """Extract the proof payload from ``predicate(bytes)`` calldata.

    Raises:
        ProofFormatError: If the selector does not match or decoding fails
    """
    raw = as_bytes(calldata, "predicate calldata")
    if raw[:4] != PREDICATE_SELECTOR:
        raise ProofFormatError(
            f"Unexpected selector 0x{raw[:4].hex()}, expected 0x{PREDICATE_SELECTOR.hex()}"
        )
    try:
        (payload,) = decode(["bytes"], raw[4:])
    except Exception as e:
        raise ProofFormatError(f"Failed to decode predicate calldata: {e}") from e
    return payload


def format_proof(encoded: EncodedProof) -> str:
    """Summarize an encoded proof without printing the full payload."""
    named = ", ".join(
        f"{name}={value}" for name, value in zip(PUBLIC_SIGNAL_NAMES, encoded.public_signals)
    )
    return f"EncodedProof({len(encoded.encoded_data)} bytes; {named})"
