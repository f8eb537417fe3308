"""Fill calldata for the host protocol's ``fillOrderArgs``.

The order extension travels inside the taker's ``args``; taker traits
record its length so the router can split ``target ++ extension ++
interaction`` back apart.
"""

from dataclasses import dataclass

from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector, is_address

from .types import Order
from ..errors import StructuralError
from ..utils import BytesLike, as_bytes

# Taker traits flags
MAKER_AMOUNT_FLAG = 1 << 255
UNWRAP_WETH_FLAG = 1 << 254
SKIP_ORDER_PERMIT_FLAG = 1 << 253
USE_PERMIT2_FLAG = 1 << 252
ARGS_HAS_TARGET_FLAG = 1 << 251

ARGS_EXTENSION_LENGTH_OFFSET = 224
ARGS_INTERACTION_LENGTH_OFFSET = 200
ARGS_LENGTH_MASK = 0xFFFFFF
THRESHOLD_MASK = (1 << 184) - 1

FILL_ORDER_ARGS_SELECTOR = function_signature_to_4byte_selector(
    "fillOrderArgs((uint256,uint256,uint256,uint256,uint256,uint256,uint256,uint256),"
    "bytes32,bytes32,uint256,uint256,bytes)"
)


@dataclass(frozen=True)
class TakerTraits:
    """Packed taker traits and the args blob they describe."""

    traits: int
    args: bytes


def build_taker_traits(
    making_amount: bool = False,
    unwrap_weth: bool = False,
    skip_maker_permit: bool = False,
    use_permit2: bool = False,
    target: str = "",
    extension: BytesLike = b"",
    interaction: BytesLike = b"",
    threshold: int = 0,
) -> TakerTraits:
    """Pack taker traits and args.

    Args:
        making_amount: Fill amount is in making-asset units (default: taking)
        unwrap_weth: Unwrap WETH for the taker
        skip_maker_permit: Skip the maker's permit
        use_permit2: Pull the taking asset via Permit2
        target: Recipient of the making asset (empty = taker)
        extension: Order extension
        interaction: Taker interaction
        threshold: Max taking (or min making) amount; 0 disables the check

    Returns:
        TakerTraits

    Raises:
        StructuralError: If target is not an address or a blob is too long
    """
    target_bytes = b""
    if target:
        if not is_address(target):
            raise StructuralError(f"Invalid target address: {target}")
        target_bytes = as_bytes(target, "target")

    extension_bytes = as_bytes(extension, "extension")
    interaction_bytes = as_bytes(interaction, "interaction")

    for label, blob in (("extension", extension_bytes), ("interaction", interaction_bytes)):
        if len(blob) > ARGS_LENGTH_MASK:
            raise StructuralError(f"{label} too long for taker traits: {len(blob)} bytes")
    if not 0 <= threshold <= THRESHOLD_MASK:
        raise StructuralError(f"Threshold out of range: {threshold}")

    traits = threshold
    if making_amount:
        traits |= MAKER_AMOUNT_FLAG
    if unwrap_weth:
        traits |= UNWRAP_WETH_FLAG
    if skip_maker_permit:
        traits |= SKIP_ORDER_PERMIT_FLAG
    if use_permit2:
        traits |= USE_PERMIT2_FLAG
    if target_bytes:
        traits |= ARGS_HAS_TARGET_FLAG
    traits |= len(extension_bytes) << ARGS_EXTENSION_LENGTH_OFFSET
    traits |= len(interaction_bytes) << ARGS_INTERACTION_LENGTH_OFFSET

    return TakerTraits(traits=traits, args=target_bytes + extension_bytes + interaction_bytes)


def encode_fill_order_args(
    order: Order,
    r: BytesLike,
    vs: BytesLike,
    amount: int,
    taker_traits: int,
    args: BytesLike,
) -> bytes:
    """Calldata for ``fillOrderArgs(order, r, vs, amount, takerTraits, args)``."""
    r_bytes = as_bytes(r, "r")
    vs_bytes = as_bytes(vs, "vs")
    if len(r_bytes) != 32 or len(vs_bytes) != 32:
        raise StructuralError("r and vs must be 32 bytes each")

    return FILL_ORDER_ARGS_SELECTOR + encode(
        ["(uint256,uint256,uint256,uint256,uint256,uint256,uint256,uint256)",
         "bytes32", "bytes32", "uint256", "uint256", "bytes"],
        [order.to_tuple(), r_bytes, vs_bytes, amount, taker_traits, as_bytes(args, "args")],
    )
