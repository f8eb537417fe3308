"""Order Types for hidden-parameter limit orders.

The public order struct mirrors the host limit-order protocol. Everything
under ``ZKMetadata`` stays with the maker and is never sent on-chain.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from ..utils import ZERO_ADDRESS
from ..zk.types import EncodedProof, ProofInputs, SecretParameters, ValidationResult


@dataclass
class OrderParams:
    """Public parameters supplied by the maker."""

    maker: str
    """Address that signs the order and provides the making asset."""

    maker_asset: str
    """Token the maker sells."""

    taker_asset: str
    """Token the maker receives."""

    making_amount: int
    """Amount of maker_asset in base units."""

    taking_amount: int
    """Amount of taker_asset in base units."""

    receiver: str = ZERO_ADDRESS
    """Recipient of taker_asset. Zero address means the maker."""

    allowed_sender: str = ZERO_ADDRESS
    """Restrict filling to one taker. Zero address means anyone."""

    expiry: int = 0
    """Unix timestamp after which the order expires. 0 means never."""

    nonce: int = 0
    """Maker-traits nonce (or epoch), unrelated to the commitment nonce."""

    series: int = 0
    """Epoch series, only meaningful with epoch checks."""

    allow_partial_fills: bool = True
    allow_multiple_fills: bool = True

    salt: Optional[int] = None
    """Ignored: the salt of a hidden order is always derived."""


@dataclass
class Order:
    """Order struct as signed by the maker and consumed by the host protocol."""

    salt: int
    maker: str
    receiver: str
    maker_asset: str
    taker_asset: str
    making_amount: int
    taking_amount: int
    maker_traits: int
    extension: bytes = b""
    """Order extension blob. Not part of the signed struct; bound via the salt."""

    def to_message(self) -> Dict[str, Any]:
        """EIP-712 message for the order struct."""
        return {
            "salt": self.salt,
            "maker": self.maker,
            "receiver": self.receiver,
            "makerAsset": self.maker_asset,
            "takerAsset": self.taker_asset,
            "makingAmount": self.making_amount,
            "takingAmount": self.taking_amount,
            "makerTraits": self.maker_traits,
        }

    def to_tuple(self) -> tuple:
        """Order as the ``(uint256 x8)`` tuple the router ABI expects."""
        return (
            self.salt,
            int(self.maker, 16),
            int(self.receiver, 16),
            int(self.maker_asset, 16),
            int(self.taker_asset, 16),
            self.making_amount,
            self.taking_amount,
            self.maker_traits,
        )


@dataclass(frozen=True)
class ExtensionData:
    """A composed predicate and the values derived from it."""

    extension_bytes: bytes
    """Full order extension (offsets header + predicate field)."""

    extension_hash: int
    """Low 160 bits of keccak256(extension_bytes)."""

    predicate_call: bytes
    """Predicate calldata stored in the extension's predicate field."""

    gas_estimate: int
    """Advisory gas estimate for evaluating the predicate."""

    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PackedSaltData:
    """A packed salt together with its components."""

    salt: int
    commitment: int
    """Full (untruncated) commitment."""

    truncated_commitment: int
    """Low 96 bits of the commitment, stored in the top of the salt."""

    extension_hash: int


@dataclass
class ZKMetadata:
    """Maker-local bookkeeping for a hidden-parameter order."""

    commitment: int
    nonce: int
    secret_params: SecretParameters
    extension_data: ExtensionData
    salt_data: PackedSaltData
    proof_inputs: ProofInputs
    encoded_proof: EncodedProof
    predicate_address: str


@dataclass
class ZKEnabledOrder:
    """An order plus the private metadata needed to re-validate it."""

    order: Order
    zk_metadata: ZKMetadata


@dataclass(frozen=True)
class OrderSignature:
    """Compact EIP-712 signature as consumed by the host protocol."""

    r: str
    """bytes32 hex."""

    vs: str
    """bytes32 hex: s with the recovery parity folded into the top bit."""

    signature: str
    """Raw 65-byte signature hex."""


class LifecycleStatus(str, Enum):
    """Maker-side lifecycle states."""

    CREATED = "created"
    SIGNED = "signed"
    VALIDATED = "validated"
    READY_TO_FILL = "ready_to_fill"
    INVALID = "invalid"


@dataclass
class OrderLifecycle:
    """An order moving through build, sign, validate and ready-to-fill."""

    order: Optional[ZKEnabledOrder]
    status: LifecycleStatus
    validation: ValidationResult = field(default_factory=ValidationResult)
    signature: Optional[OrderSignature] = None
    history: List[LifecycleStatus] = field(default_factory=list)


@dataclass(frozen=True)
class FillArgs:
    """Everything a taker needs from the maker to submit a fill."""

    order: Order
    r: str
    vs: str
    extension: bytes


@dataclass
class FillPreparation:
    """Result of preparing a lifecycle for filling."""

    fill_args: Optional[FillArgs]
    errors: List[str] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return self.fill_args is not None


IssueType = Literal["error", "warning", "info"]
IssueCategory = Literal["order", "balance", "gas", "network", "zk"]


@dataclass(frozen=True)
class TakerIssue:
    """One categorized finding from the taker-side checks."""

    type: IssueType
    category: IssueCategory
    message: str


# EIP-712 types for the limit order struct
ORDER_TYPES = {
    "Order": [
        {"name": "salt", "type": "uint256"},
        {"name": "maker", "type": "address"},
        {"name": "receiver", "type": "address"},
        {"name": "makerAsset", "type": "address"},
        {"name": "takerAsset", "type": "address"},
        {"name": "makingAmount", "type": "uint256"},
        {"name": "takingAmount", "type": "uint256"},
        {"name": "makerTraits", "type": "uint256"},
    ],
}
