"""Protocol constants and trait helpers for the host limit-order protocol."""

from typing import Dict, List, Optional

from eth_utils import is_address

from ..errors import OrderParamError, StructuralError
from ..utils import ZERO_ADDRESS, as_bytes, BytesLike
from ..zk.types import PRICE_PRECISION

UINT256_MAX = 2**256 - 1
UINT160_MASK = 2**160 - 1
UINT40_MAX = 2**40 - 1
UINT32_MAX = 2**32 - 1
UINT80_MASK = 2**80 - 1

# Maker traits flags (bit positions)
NO_PARTIAL_FILLS_FLAG = 255
ALLOW_MULTIPLE_FILLS_FLAG = 254
NEED_PREINTERACTION_FLAG = 252
NEED_POSTINTERACTION_FLAG = 251
NEED_EPOCH_CHECK_FLAG = 250
HAS_EXTENSION_FLAG = 249
USE_PERMIT2_FLAG = 248
UNWRAP_WETH_FLAG = 247

# Maker traits value fields
ALLOWED_SENDER_MASK = UINT80_MASK
EXPIRY_SHIFT = 80
NONCE_SHIFT = 120
SERIES_SHIFT = 160

# Order extension fields, in offsets-header order
EXTENSION_FIELDS = (
    "maker_asset_suffix",
    "taker_asset_suffix",
    "making_amount_data",
    "taking_amount_data",
    "predicate",
    "maker_permit",
    "pre_interaction_data",
    "post_interaction_data",
)
PREDICATE_FIELD_INDEX = EXTENSION_FIELDS.index("predicate")


def set_bit(value: int, bit: int, enabled: bool = True) -> int:
    """Set or clear one bit of a uint256."""
    if enabled:
        return value | (1 << bit)
    return value & ~(1 << bit)


def has_bit(value: int, bit: int) -> bool:
    return (value >> bit) & 1 == 1


def build_maker_traits(
    allowed_sender: str = ZERO_ADDRESS,
    expiry: int = 0,
    nonce: int = 0,
    series: int = 0,
    allow_partial_fills: bool = True,
    allow_multiple_fills: bool = True,
    has_extension: bool = True,
    need_epoch_check: bool = False,
    use_permit2: bool = False,
    unwrap_weth: bool = False,
) -> int:
    """Pack maker traits into the uint256 bitfield.

    Args:
        allowed_sender: Only this taker may fill (zero address = anyone)
        expiry: Expiration timestamp (0 = never)
        nonce: Nonce or epoch
        series: Epoch series
        allow_partial_fills: Permit fills smaller than the full order
        allow_multiple_fills: Permit more than one fill
        has_extension: Order carries an extension (always true for hidden orders)
        need_epoch_check: Validate nonce against the epoch manager
        use_permit2: Pull the making asset via Permit2
        unwrap_weth: Unwrap WETH for the maker

    Returns:
        Maker traits as int

    Raises:
        OrderParamError: If an address is invalid or a field exceeds 40 bits
    """
    if not is_address(allowed_sender):
        raise OrderParamError(f"Invalid allowed_sender address: {allowed_sender}")

    for name, value in (("expiry", expiry), ("nonce", nonce), ("series", series)):
        if not 0 <= value <= UINT40_MAX:
            raise OrderParamError(f"{name} must fit in 40 bits: {value}")

    traits = int(allowed_sender, 16) & ALLOWED_SENDER_MASK
    traits |= expiry << EXPIRY_SHIFT
    traits |= nonce << NONCE_SHIFT
    traits |= series << SERIES_SHIFT

    traits = set_bit(traits, NO_PARTIAL_FILLS_FLAG, not allow_partial_fills)
    traits = set_bit(traits, ALLOW_MULTIPLE_FILLS_FLAG, allow_multiple_fills)
    traits = set_bit(traits, HAS_EXTENSION_FLAG, has_extension)
    traits = set_bit(traits, NEED_EPOCH_CHECK_FLAG, need_epoch_check)
    traits = set_bit(traits, USE_PERMIT2_FLAG, use_permit2)
    traits = set_bit(traits, UNWRAP_WETH_FLAG, unwrap_weth)
    return traits


def decode_maker_traits(traits: int) -> Dict[str, object]:
    """Break a maker traits value into named fields."""
    return {
        "allowed_sender_low_bits": traits & ALLOWED_SENDER_MASK,
        "expiry": (traits >> EXPIRY_SHIFT) & UINT40_MAX,
        "nonce": (traits >> NONCE_SHIFT) & UINT40_MAX,
        "series": (traits >> SERIES_SHIFT) & UINT40_MAX,
        "allow_partial_fills": not has_bit(traits, NO_PARTIAL_FILLS_FLAG),
        "allow_multiple_fills": has_bit(traits, ALLOW_MULTIPLE_FILLS_FLAG),
        "has_extension": has_bit(traits, HAS_EXTENSION_FLAG),
        "need_epoch_check": has_bit(traits, NEED_EPOCH_CHECK_FLAG),
        "use_permit2": has_bit(traits, USE_PERMIT2_FLAG),
        "unwrap_weth": has_bit(traits, UNWRAP_WETH_FLAG),
    }


def build_order_extension(**fields: Optional[BytesLike]) -> bytes:
    """Build an order extension blob.

    The blob is a 32-byte offsets word followed by the concatenated fields.
    Field ``i``'s cumulative end offset sits in bits ``[32*i, 32*i + 32)``.

    Args:
        **fields: Any of ``EXTENSION_FIELDS`` as bytes or hex

    Returns:
        Extension bytes, or empty bytes when every field is empty

    Raises:
        StructuralError: If an unknown field is given or the blob is too large
    """
    unknown = set(fields) - set(EXTENSION_FIELDS)
    if unknown:
        raise StructuralError(f"Unknown extension fields: {', '.join(sorted(unknown))}")

    parts: List[bytes] = [
        as_bytes(fields.get(name) or b"", name) for name in EXTENSION_FIELDS
    ]
    if not any(parts):
        return b""

    offsets = 0
    end = 0
    for index, part in enumerate(parts):
        end += len(part)
        if end > UINT32_MAX:
            raise StructuralError("Extension too large for 32-bit offsets")
        offsets |= end << (32 * index)

    return offsets.to_bytes(32, "big") + b"".join(parts)


def decode_order_extension(extension: BytesLike) -> Dict[str, bytes]:
    """Split an order extension blob back into its fields.

    Raises:
        StructuralError: If the offsets are inconsistent with the blob length
    """
    raw = as_bytes(extension, "extension")
    if not raw:
        return {name: b"" for name in EXTENSION_FIELDS}
    if len(raw) < 32:
        raise StructuralError("Extension shorter than its offsets header")

    offsets = int.from_bytes(raw[:32], "big")
    data = raw[32:]
    result: Dict[str, bytes] = {}
    begin = 0
    for index, name in enumerate(EXTENSION_FIELDS):
        end = (offsets >> (32 * index)) & UINT32_MAX
        if end < begin or end > len(data):
            raise StructuralError(f"Invalid offset for extension field {name}: {end}")
        result[name] = data[begin:end]
        begin = end
    return result


def get_extension_predicate(extension: BytesLike) -> bytes:
    """Predicate field of an order extension."""
    return decode_order_extension(extension)["predicate"]


def calculate_offered_price(taking_amount: int, making_amount: int) -> int:
    """Price as the circuit sees it: takingAmount * 1e18 / makingAmount.

    Raises:
        OrderParamError: If making_amount is not positive
    """
    if making_amount <= 0:
        raise OrderParamError(f"Invalid makingAmount: {making_amount}")
    return taking_amount * PRICE_PRECISION // making_amount
