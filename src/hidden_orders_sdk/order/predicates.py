"""Predicate Composer.

Builds calldata in the host protocol's predicate dialect. At fill time the
router static-calls itself with the order's predicate, so every primitive
here encodes a call to one of the router's predicate helpers:

- ``arbitraryStaticCall(address,bytes)`` calls any contract
- ``gt``/``lt``/``eq(uint256,bytes)`` compare a sub-call's uint256 result
- ``and``/``or(uint256,bytes)`` join sub-calls; the uint256 packs the
  cumulative end offset of each sub-call, 32 bits apiece
- ``not(bytes)`` negates a sub-call

A hidden-parameter predicate is ``gt(0, arbitraryStaticCall(verifier,
predicate(proof)))``: the verifier returns 1 for an accepted proof.
"""

import logging
from typing import Any, Dict, List, Sequence, Tuple

from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector, is_address, to_checksum_address

from .salt import compute_extension_hash
from .types import ExtensionData
from .utils import UINT32_MAX, build_order_extension
from ..errors import PredicateEncodingError, StructuralError
from ..utils import ZERO_ADDRESS, BytesLike, as_bytes, as_hex
from ..zk.proof import ENCODED_PROOF_LENGTH, encode_predicate_call
from ..zk.types import ValidationResult

logger = logging.getLogger(__name__)

ARBITRARY_STATIC_CALL_SELECTOR = function_signature_to_4byte_selector(
    "arbitraryStaticCall(address,bytes)"
)
GT_SELECTOR = function_signature_to_4byte_selector("gt(uint256,bytes)")
LT_SELECTOR = function_signature_to_4byte_selector("lt(uint256,bytes)")
EQ_SELECTOR = function_signature_to_4byte_selector("eq(uint256,bytes)")
AND_SELECTOR = function_signature_to_4byte_selector("and(uint256,bytes)")
OR_SELECTOR = function_signature_to_4byte_selector("or(uint256,bytes)")
NOT_SELECTOR = function_signature_to_4byte_selector("not(bytes)")

DEFAULT_GAS_LIMIT = 300_000
MAX_JOINED_CALLS = 8

EXTENSION_OVERHEAD_GAS = 30_000
ADDITIONAL_PREDICATE_GAS = 50_000
CALLDATA_GAS_PER_BYTE = 12


def arbitrary_static_call(target: str, calldata: BytesLike) -> bytes:
    """Wrap a call to any contract.

    Raises:
        PredicateEncodingError: If the target address is invalid
    """
    if not is_address(target):
        raise PredicateEncodingError(f"Invalid predicate address: {target}")
    return ARBITRARY_STATIC_CALL_SELECTOR + encode(
        ["address", "bytes"], [to_checksum_address(target), as_bytes(calldata, "calldata")]
    )


def _compare(selector: bytes, value: int, call: BytesLike) -> bytes:
    if not 0 <= value < 2**256:
        raise PredicateEncodingError(f"Comparison value out of uint256 range: {value}")
    return selector + encode(["uint256", "bytes"], [value, as_bytes(call, "call")])


def gt(value: int, call: BytesLike) -> bytes:
    """True when the sub-call returns a uint256 greater than ``value``."""
    return _compare(GT_SELECTOR, value, call)


def gt_zero(call: BytesLike) -> bytes:
    """True when the sub-call returns a non-zero uint256."""
    return gt(0, call)


def lt(value: int, call: BytesLike) -> bytes:
    return _compare(LT_SELECTOR, value, call)


def eq(value: int, call: BytesLike) -> bytes:
    return _compare(EQ_SELECTOR, value, call)


def not_(call: BytesLike) -> bytes:
    return NOT_SELECTOR + encode(["bytes"], [as_bytes(call, "call")])


def join_static_calls(calls: Sequence[BytesLike]) -> Tuple[int, bytes]:
    """Concatenate sub-calls and pack their cumulative end offsets.

    Args:
        calls: Up to 8 sub-call calldatas

    Returns:
        ``(offsets, data)`` where offset ``i`` lives in bits ``[32*i, 32*i + 32)``

    Raises:
        PredicateEncodingError: If there are no calls or more than 8
    """
    if not calls:
        raise PredicateEncodingError("At least one call is required")
    if len(calls) > MAX_JOINED_CALLS:
        raise PredicateEncodingError(
            f"Too many calls to join: {len(calls)} > {MAX_JOINED_CALLS}"
        )

    offsets = 0
    end = 0
    parts: List[bytes] = []
    for index, call in enumerate(calls):
        raw = as_bytes(call, f"call[{index}]")
        end += len(raw)
        if end > UINT32_MAX:
            raise PredicateEncodingError("Joined calldata too large for 32-bit offsets")
        offsets |= end << (32 * index)
        parts.append(raw)

    return offsets, b"".join(parts)


def join_and(predicates: Sequence[BytesLike]) -> bytes:
    """All sub-predicates must hold."""
    offsets, data = join_static_calls(predicates)
    return AND_SELECTOR + encode(["uint256", "bytes"], [offsets, data])


def join_or(predicates: Sequence[BytesLike]) -> bytes:
    """Any sub-predicate may hold. Not safe for more than one ZK predicate; see
    ``build_combined_extension``."""
    offsets, data = join_static_calls(predicates)
    return OR_SELECTOR + encode(["uint256", "bytes"], [offsets, data])


def validate_proof_data(proof_data: BytesLike) -> ValidationResult:
    """Pre-flight checks on proof bytes before wrapping them in a predicate.

    ``proof_data`` is the ABI-encoded proof before the ``predicate(bytes)``
    wrapping. Short blobs are a warning only; the length check is a
    heuristic, not a correctness guarantee.
    """
    errors: List[str] = []
    warnings: List[str] = []

    if isinstance(proof_data, (bytes, bytearray)):
        length = len(proof_data)
    else:
        try:
            length = len(as_bytes(proof_data, "ZK proof data"))
        except StructuralError as e:
            return ValidationResult.from_lists([str(e)])

    if length == 0:
        errors.append("ZK proof data is empty")
    elif length < ENCODED_PROOF_LENGTH:
        warnings.append(
            f"ZK proof data seems short: {length} bytes. "
            f"Expected {ENCODED_PROOF_LENGTH}"
        )

    return ValidationResult.from_lists(errors, warnings)


def estimate_zk_extension_gas(
    proof_data_length: int,
    additional_predicate_count: int = 0,
    gas_limit: int = DEFAULT_GAS_LIMIT,
) -> int:
    """Advisory gas estimate for evaluating a ZK predicate.

    Real gas usage must come from simulation.
    """
    return (
        gas_limit
        + proof_data_length * CALLDATA_GAS_PER_BYTE
        + additional_predicate_count * ADDITIONAL_PREDICATE_GAS
        + EXTENSION_OVERHEAD_GAS
    )


def _extension_data(
    predicate: bytes, gas_estimate: int, warnings: List[str]
) -> ExtensionData:
    extension = build_order_extension(predicate=predicate)
    return ExtensionData(
        extension_bytes=extension,
        extension_hash=compute_extension_hash(extension),
        predicate_call=predicate,
        gas_estimate=gas_estimate,
        warnings=warnings,
    )


def build_zk_extension(
    predicate_address: str,
    proof_data: BytesLike,
    gas_limit: int = DEFAULT_GAS_LIMIT,
) -> ExtensionData:
    """Build the extension for a single hidden-parameter predicate.

    Args:
        predicate_address: Deployed predicate verifier contract
        proof_data: ABI-encoded proof (see ``zk.proof.encode_proof``)
        gas_limit: Gas budget assumed for the verifier call

    Returns:
        ExtensionData whose extension_bytes is the full order extension

    Raises:
        StructuralError: If the proof data is not valid hex
        PredicateEncodingError: If the predicate address is invalid
    """
    validation = validate_proof_data(proof_data)
    if not validation.is_valid:
        raise StructuralError(f"Invalid ZK proof data: {', '.join(validation.errors)}")

    warnings = list(validation.warnings)
    if is_address(predicate_address) and int(predicate_address, 16) == int(ZERO_ADDRESS, 16):
        warnings.append("Predicate address is the zero address; the predicate can never pass")

    for warning in warnings:
        logger.warning("ZK extension: %s", warning)

    raw = as_bytes(proof_data, "ZK proof data")
    predicate = gt_zero(
        arbitrary_static_call(predicate_address, encode_predicate_call(raw))
    )
    return _extension_data(
        predicate, estimate_zk_extension_gas(len(raw), gas_limit=gas_limit), warnings
    )


def build_combined_extension(
    zk_extensions: Sequence[ExtensionData],
    additional_predicates: Sequence[BytesLike] = (),
    use_or_logic: bool = False,
) -> ExtensionData:
    """Combine ZK predicates with other predicates into one extension.

    OR semantics across more than one ZK predicate cannot be expressed
    safely, so that request logs a warning and falls back to AND.

    Raises:
        PredicateEncodingError: If no predicate is given or too many are
    """
    predicates: List[bytes] = [ext.predicate_call for ext in zk_extensions]
    predicates.extend(as_bytes(p, "predicate") for p in additional_predicates)

    if not predicates:
        raise PredicateEncodingError(
            "At least one predicate (ZK or additional) must be provided"
        )

    warnings: List[str] = []
    for ext in zk_extensions:
        warnings.extend(ext.warnings)

    if len(predicates) == 1:
        combined = predicates[0]
    elif use_or_logic and len(zk_extensions) > 1:
        message = "OR logic with multiple ZK predicates is not supported. Using AND logic."
        logger.warning(message)
        warnings.append(message)
        combined = join_and(predicates)
    elif use_or_logic:
        combined = join_or(predicates)
    else:
        combined = join_and(predicates)

    gas_estimate = (
        sum(ext.gas_estimate for ext in zk_extensions)
        + len(additional_predicates) * ADDITIONAL_PREDICATE_GAS
    )
    return _extension_data(combined, gas_estimate, warnings)


def debug_extension(data: ExtensionData) -> Dict[str, Any]:
    """Summarize an extension for logging or display."""
    hash_hex = hex(data.extension_hash)
    return {
        "summary": (
            f"ZK Extension: {len(data.extension_bytes)} bytes, "
            f"hash {hash_hex[:10]}..., ~{data.gas_estimate} gas"
        ),
        "extension_length": len(data.extension_bytes),
        "hash_hex": hash_hex,
        "gas_estimate": data.gas_estimate,
        "selector": as_hex(data.predicate_call[:4]),
        "predicate_call_length": len(data.predicate_call),
        "warnings": list(data.warnings),
    }
