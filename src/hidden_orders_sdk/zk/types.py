"""ZK Types for hidden-parameter orders.

Shapes exchanged with the proving backend and the on-chain verifier.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from py_ecc import bn128

# BN254 scalar field (public signals, commitments) and base field (curve coordinates)
SNARK_SCALAR_FIELD = bn128.curve_order
BN254_BASE_FIELD = bn128.field_modulus

# Public signals emitted by the circuit, in order
PUBLIC_SIGNAL_NAMES = ("valid", "commit", "nonce", "offeredPrice", "offeredAmount")
PUBLIC_SIGNAL_COUNT = len(PUBLIC_SIGNAL_NAMES)

# Fixed-price precision used for offeredPrice = takingAmount * 1e18 / makingAmount
PRICE_PRECISION = 10**18


@dataclass(frozen=True)
class SecretParameters:
    """Maker-private fill thresholds. Only ever leave the process inside a proof."""

    secret_price: int
    """Minimum acceptable price (takingAmount * 1e18 / makingAmount)."""

    secret_amount: int
    """Minimum acceptable amount in making-asset units."""

    nonce: int
    """Randomness that makes the commitment unique."""


@dataclass(frozen=True)
class CommitmentData:
    """A commitment together with the parameters that produced it."""

    commitment: int
    secret_params: SecretParameters


@dataclass(frozen=True)
class ProofInputs:
    """Full witness inputs handed to the proving backend."""

    secret_price: int
    secret_amount: int
    commit: int
    nonce: int
    offered_price: int
    offered_amount: int

    def to_circuit_json(self) -> dict:
        """Input object in the circuit's signal names (decimal strings)."""
        return {
            "secretPrice": str(self.secret_price),
            "secretAmount": str(self.secret_amount),
            "commit": str(self.commit),
            "nonce": str(self.nonce),
            "offeredPrice": str(self.offered_price),
            "offeredAmount": str(self.offered_amount),
        }


@dataclass(frozen=True)
class Groth16Proof:
    """Proof exactly as emitted by snarkjs (projective coordinates, decimal strings)."""

    pi_a: Tuple[str, ...]
    pi_b: Tuple[Tuple[str, ...], ...]
    pi_c: Tuple[str, ...]
    protocol: str = "groth16"
    curve: str = "bn128"

    @classmethod
    def from_json(cls, data: dict) -> "Groth16Proof":
        """Build from the snarkjs ``proof.json`` object."""
        return cls(
            pi_a=tuple(str(x) for x in data["pi_a"]),
            pi_b=tuple(tuple(str(x) for x in pair) for pair in data["pi_b"]),
            pi_c=tuple(str(x) for x in data["pi_c"]),
            protocol=data.get("protocol", "groth16"),
            curve=data.get("curve", "bn128"),
        )

    def to_json(self) -> dict:
        return {
            "pi_a": list(self.pi_a),
            "pi_b": [list(pair) for pair in self.pi_b],
            "pi_c": list(self.pi_c),
            "protocol": self.protocol,
            "curve": self.curve,
        }


@dataclass(frozen=True)
class VerifierProof:
    """Proof points in the layout the Solidity verifier decodes (G2 coordinates swapped)."""

    a: Tuple[int, int]
    b: Tuple[Tuple[int, int], Tuple[int, int]]
    c: Tuple[int, int]


@dataclass(frozen=True)
class EncodedProof:
    """ABI-encoded proof plus the decoded components it was built from."""

    encoded_data: bytes
    proof: VerifierProof
    public_signals: Tuple[int, ...]

    @property
    def hex(self) -> str:
        return "0x" + self.encoded_data.hex()


@dataclass
class ValidationResult:
    """Outcome of a validation step."""

    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def from_lists(
        cls, errors: List[str], warnings: Optional[List[str]] = None
    ) -> "ValidationResult":
        return cls(is_valid=not errors, errors=list(errors), warnings=list(warnings or []))


@dataclass(frozen=True)
class ProverOutput:
    """Raw result of a proving backend run."""

    proof: Groth16Proof
    public_signals: Tuple[str, ...]

    @classmethod
    def from_json(cls, proof: dict, public_signals: List) -> "ProverOutput":
        return cls(
            proof=Groth16Proof.from_json(proof),
            public_signals=tuple(str(s) for s in public_signals),
        )
