"""Order Assembler.

Combines the commitment, the proof and the composed predicate into a
hidden-parameter order:

1. validate order parameters
2. commit to the secret parameters
3. obtain a proof (proving backend or pre-generated)
4. wrap the proof-verification call in ``gt(0, ...)``
5. derive the salt from the commitment and the extension hash
6. assemble the order with the extension and derived salt
7. attach maker-local metadata
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from eth_utils import is_address, to_checksum_address

from .predicates import build_combined_extension, build_zk_extension, debug_extension
from .salt import compute_extension_hash, format_packed_salt, pack, truncate_commitment, unpack
from .types import Order, OrderParams, ZKEnabledOrder, ZKMetadata
from .utils import (
    HAS_EXTENSION_FLAG,
    build_maker_traits,
    calculate_offered_price,
    has_bit,
)
from ..config import ResolvedZKOrderConfig, ZKOrderConfig, resolve_config
from ..errors import (
    ExternalFailure,
    OrderParamError,
    SaltInconsistency,
    StructuralError,
)
from ..utils import ZERO_ADDRESS, BytesLike, as_hex
from ..zk.commitment import calculate_commitment, validate_commitment
from ..zk.proof import encode_proof
from ..zk.prover import ProvingBackend, check_public_signals, generate_proof
from ..zk.types import (
    PRICE_PRECISION,
    EncodedProof,
    ProofInputs,
    ProverOutput,
    SecretParameters,
    ValidationResult,
)

logger = logging.getLogger(__name__)

TRUNCATION_WARNING = (
    "Salt carries only the low 96 bits of the commitment "
    "(collisions expected after ~2^48 orders)"
)


@dataclass
class BuildResult:
    """Outcome of building an order.

    ``order`` is None when an external collaborator (proving backend) failed;
    the cause is then in ``errors``.
    """

    order: Optional[ZKEnabledOrder]
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    debug_info: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.order is not None and not self.errors


def validate_order_params(
    params: OrderParams,
    secret_params: SecretParameters,
    predicate_address: Optional[str],
) -> ValidationResult:
    """Check addresses, amounts and the maker footguns around the thresholds.

    Errors are structural problems with the parameters. Warnings flag orders
    that are valid but unlikely to ever fill.
    """
    errors: List[str] = []
    warnings: List[str] = []

    for label, address in (
        ("maker", params.maker),
        ("makerAsset", params.maker_asset),
        ("takerAsset", params.taker_asset),
        ("receiver", params.receiver),
        ("allowedSender", params.allowed_sender),
    ):
        if not is_address(address):
            errors.append(f"Invalid {label} address: {address}")

    if predicate_address is None or not is_address(predicate_address):
        errors.append(f"Invalid zkPredicateAddress: {predicate_address}")

    if params.making_amount <= 0:
        errors.append(f"Invalid makingAmount: {params.making_amount}")
    if params.taking_amount <= 0:
        errors.append(f"Invalid takingAmount: {params.taking_amount}")

    if secret_params.secret_price <= 0:
        errors.append(f"Invalid secretPrice: {secret_params.secret_price}")
    if secret_params.secret_amount <= 0:
        errors.append(f"Invalid secretAmount: {secret_params.secret_amount}")

    if params.making_amount > 0 and secret_params.secret_price > (
        params.taking_amount * PRICE_PRECISION // params.making_amount
    ):
        warnings.append("Secret price higher than implied order price - order may never fill")

    if secret_params.secret_amount > params.making_amount:
        warnings.append("Secret amount higher than making amount - order may never fill")

    if params.salt is not None:
        warnings.append("Caller-supplied salt ignored; hidden orders derive their salt")

    return ValidationResult.from_lists(errors, warnings)


def validate_consistency(zk_order: ZKEnabledOrder) -> ValidationResult:
    """Re-derive salt components from the order's metadata and compare.

    Side-effect free; safe to call at any point of the lifecycle.
    """
    order = zk_order.order
    metadata = zk_order.zk_metadata
    errors: List[str] = []
    warnings: List[str] = []

    try:
        salt_commitment, salt_extension_hash = unpack(order.salt)
    except StructuralError as e:
        return ValidationResult.from_lists([f"Salt validation failed: {e}"])

    if salt_commitment != truncate_commitment(metadata.commitment):
        errors.append("Salt commitment doesn't match order metadata commitment")

    try:
        actual_extension_hash = compute_extension_hash(order.extension)
    except StructuralError as e:
        return ValidationResult.from_lists([f"Extension validation failed: {e}"])

    if salt_extension_hash != actual_extension_hash:
        errors.append("Salt extension hash doesn't match order extension")
    if metadata.extension_data.extension_hash != actual_extension_hash:
        errors.append("Order extension doesn't match extension data")

    if order.extension and not has_bit(order.maker_traits, HAS_EXTENSION_FLAG):
        errors.append("Maker traits are missing the HAS_EXTENSION flag")

    commitment_check = validate_commitment(metadata.commitment, metadata.secret_params)
    errors.extend(commitment_check.errors)

    valid, signal_commit, signal_nonce, offered_price, offered_amount = (
        metadata.encoded_proof.public_signals
    )
    if valid != 1:
        errors.append("Proof reports valid=0; the predicate will always reject")
    if signal_commit != metadata.commitment:
        errors.append("Proof commitment doesn't match order metadata commitment")
    if signal_nonce != metadata.nonce:
        errors.append("Proof nonce doesn't match order metadata nonce")

    # the verifier checks the proof against these public terms at fill time
    if order.making_amount > 0:
        expected_price = order.taking_amount * PRICE_PRECISION // order.making_amount
        if offered_price != expected_price:
            errors.append("Proof offered price doesn't match order price ratio")
    if offered_amount != order.making_amount:
        errors.append("Proof offered amount doesn't match order making amount")

    return ValidationResult.from_lists(errors, warnings)


def assert_consistent(zk_order: ZKEnabledOrder) -> None:
    """Raise SaltInconsistency if ``validate_consistency`` fails."""
    validation = validate_consistency(zk_order)
    if not validation.is_valid:
        raise SaltInconsistency("; ".join(validation.errors))


class OrderAssembler:
    """Builds hidden-parameter orders.

    Example:
        >>> assembler = OrderAssembler(
        ...     {"chain_id": 1, "predicate_address": "0x..."},
        ...     proving_backend=SnarkjsProvingBackend(wasm, zkey),
        ... )
        >>> result = await assembler.build(params, SecretParameters(...))
        >>> result.order.order.salt
    """

    def __init__(
        self,
        config: Optional[ZKOrderConfig] = None,
        proving_backend: Optional[ProvingBackend] = None,
    ):
        self.config: ResolvedZKOrderConfig = resolve_config(config)
        self.proving_backend = proving_backend

    async def build(
        self,
        params: OrderParams,
        secret_params: SecretParameters,
        predicate_address: Optional[str] = None,
        proof: Optional[ProverOutput] = None,
        additional_predicates: Sequence[BytesLike] = (),
        use_or_logic: bool = False,
    ) -> BuildResult:
        """Build a hidden-parameter order.

        Args:
            params: Public order parameters
            secret_params: Maker-private thresholds and commitment nonce
            predicate_address: Predicate verifier (default: from config)
            proof: Pre-generated proof; skips the proving backend
            additional_predicates: Extra predicate calls joined with the ZK one
            use_or_logic: Join additional predicates with OR

        Returns:
            BuildResult. Proving backend failures, and proofs reporting
            valid=0, are reported in ``errors``.

        Raises:
            OrderParamError: If the order parameters are invalid
            SecretParameterError: If the secret parameters are out of range
            ConsistencyError: If a pre-generated proof was made for other terms
        """
        predicate_address = predicate_address or self.config.predicate_address

        validation = validate_order_params(params, secret_params, predicate_address)
        if not validation.is_valid:
            raise OrderParamError(f"Invalid order parameters: {', '.join(validation.errors)}")

        warnings = list(validation.warnings)

        commitment = calculate_commitment(
            secret_params.secret_price, secret_params.secret_amount, secret_params.nonce
        )
        proof_inputs = ProofInputs(
            secret_price=secret_params.secret_price,
            secret_amount=secret_params.secret_amount,
            commit=commitment,
            nonce=secret_params.nonce,
            offered_price=calculate_offered_price(params.taking_amount, params.making_amount),
            offered_amount=params.making_amount,
        )

        try:
            encoded = await self._obtain_proof(proof_inputs, proof)
        except ExternalFailure as e:
            logger.error("Proof generation failed: %s", e)
            return BuildResult(order=None, errors=[str(e)], warnings=warnings)

        zk_extension = build_zk_extension(
            predicate_address, encoded.encoded_data, self.config.predicate_gas_limit
        )
        if additional_predicates:
            extension_data = build_combined_extension(
                [zk_extension], additional_predicates, use_or_logic
            )
        else:
            extension_data = zk_extension
        warnings.extend(extension_data.warnings)

        salt_data = pack(commitment, extension_data.extension_hash)
        if not self.config.acknowledge_truncated_commitment:
            warnings.append(TRUNCATION_WARNING)

        order = Order(
            salt=salt_data.salt,
            maker=to_checksum_address(params.maker),
            receiver=to_checksum_address(params.receiver),
            maker_asset=to_checksum_address(params.maker_asset),
            taker_asset=to_checksum_address(params.taker_asset),
            making_amount=params.making_amount,
            taking_amount=params.taking_amount,
            maker_traits=build_maker_traits(
                allowed_sender=params.allowed_sender,
                expiry=params.expiry,
                nonce=params.nonce,
                series=params.series,
                allow_partial_fills=params.allow_partial_fills,
                allow_multiple_fills=params.allow_multiple_fills,
                has_extension=True,
            ),
            extension=extension_data.extension_bytes,
        )

        zk_order = ZKEnabledOrder(
            order=order,
            zk_metadata=ZKMetadata(
                commitment=commitment,
                nonce=secret_params.nonce,
                secret_params=secret_params,
                extension_data=extension_data,
                salt_data=salt_data,
                proof_inputs=proof_inputs,
                encoded_proof=encoded,
                predicate_address=to_checksum_address(predicate_address),
            ),
        )

        consistency = validate_consistency(zk_order)
        warnings.extend(consistency.warnings)

        for warning in validation.warnings:
            logger.warning("Order %s: %s", hex(salt_data.salt), warning)
        logger.info(
            "Built hidden order maker=%s commitment=%s extension=%d bytes",
            order.maker,
            commitment,
            len(order.extension),
        )

        return BuildResult(
            order=zk_order,
            errors=list(consistency.errors),
            warnings=warnings,
            debug_info={
                "commitment": hex(commitment),
                "salt": format_packed_salt(salt_data),
                "extension": debug_extension(extension_data),
                "offered_price": proof_inputs.offered_price,
                "offered_amount": proof_inputs.offered_amount,
            },
        )

    async def _obtain_proof(
        self, inputs: ProofInputs, proof: Optional[ProverOutput]
    ) -> EncodedProof:
        if proof is not None:
            encoded = encode_proof(proof.proof, proof.public_signals)
            check_public_signals(encoded, inputs)
            return encoded

        if self.proving_backend is None:
            raise OrderParamError("A proving backend or a pre-generated proof is required")

        return await generate_proof(self.proving_backend, inputs)


def summarize_order(zk_order: ZKEnabledOrder) -> Dict[str, Any]:
    """Public view of an order. Secret parameters are left out."""
    order = zk_order.order
    return {
        "maker": order.maker,
        "receiver": order.receiver if order.receiver != ZERO_ADDRESS else order.maker,
        "maker_asset": order.maker_asset,
        "taker_asset": order.taker_asset,
        "making_amount": order.making_amount,
        "taking_amount": order.taking_amount,
        "maker_traits": hex(order.maker_traits),
        "salt": hex(order.salt),
        "commitment": hex(zk_order.zk_metadata.commitment),
        "predicate_address": zk_order.zk_metadata.predicate_address,
        "extension_length": len(order.extension),
        "gas_estimate": zk_order.zk_metadata.extension_data.gas_estimate,
    }


def debug_order(zk_order: ZKEnabledOrder) -> str:
    """Multi-line debug dump of an order, without secret parameters."""
    summary = summarize_order(zk_order)
    lines = ["ZKEnabledOrder:"]
    lines.extend(f"  {key}: {value}" for key, value in summary.items())
    lines.append(f"  extension: {as_hex(zk_order.order.extension)[:66]}...")
    return "\n".join(lines)
