"""Lifecycle Controller.

Drives an order through ``created -> signed -> validated -> ready_to_fill``.
Any failure moves it to ``invalid``. Transitions are fail-closed: anything
not listed in ``_TRANSITIONS`` is rejected, so no path re-enters ``created``
and nothing leaves a terminal state.

Signing is refused unless the order is consistent, and consistency is
re-checked after the signature comes back. Signer failures never escape
as exceptions; they become an ``invalid`` lifecycle with the cause in
``validation.errors``.
"""

import logging
from typing import Dict, List, Optional, Set, Tuple

from .builder import BuildResult, validate_consistency
from .signing import TypedDataSigner, sign_order_with_signer, verify_order_signature
from .types import FillArgs, FillPreparation, LifecycleStatus, OrderLifecycle, ZKEnabledOrder
from ..config import ResolvedZKOrderConfig, ZKOrderConfig, resolve_config
from ..errors import HiddenOrderError
from ..zk.types import ValidationResult

logger = logging.getLogger(__name__)

_TRANSITIONS: Set[Tuple[LifecycleStatus, LifecycleStatus]] = {
    (LifecycleStatus.CREATED, LifecycleStatus.SIGNED),
    (LifecycleStatus.SIGNED, LifecycleStatus.VALIDATED),
    (LifecycleStatus.VALIDATED, LifecycleStatus.READY_TO_FILL),
    # Fail from any non-terminal state
    (LifecycleStatus.CREATED, LifecycleStatus.INVALID),
    (LifecycleStatus.SIGNED, LifecycleStatus.INVALID),
    (LifecycleStatus.VALIDATED, LifecycleStatus.INVALID),
}

TERMINAL_STATES = frozenset({LifecycleStatus.READY_TO_FILL, LifecycleStatus.INVALID})

# Coarse, advisory figures
BASE_TRANSACTION_GAS = 21_000
SIGNING_OVERHEAD_GAS = 5_000
VALIDATION_GAS = 10_000


class LifecycleController:
    """Maker-side state machine for hidden-parameter orders.

    Example:
        >>> controller = LifecycleController({"chain_id": 1})
        >>> lifecycle = await controller.process(result.order, signer)
        >>> lifecycle.status
        <LifecycleStatus.READY_TO_FILL: 'ready_to_fill'>
    """

    def __init__(self, config: Optional[ZKOrderConfig] = None):
        self.config: ResolvedZKOrderConfig = resolve_config(config)

    def create(self, zk_order: ZKEnabledOrder) -> OrderLifecycle:
        """Start a lifecycle for a freshly built order."""
        validation = validate_consistency(zk_order)
        status = LifecycleStatus.CREATED if validation.is_valid else LifecycleStatus.INVALID
        if not validation.is_valid:
            logger.warning("Order created invalid: %s", "; ".join(validation.errors))
        return OrderLifecycle(
            order=zk_order, status=status, validation=validation, history=[status]
        )

    def from_build(self, result: BuildResult) -> OrderLifecycle:
        """Start a lifecycle from a build result, failed builds included."""
        if result.order is None:
            return OrderLifecycle(
                order=None,
                status=LifecycleStatus.INVALID,
                validation=ValidationResult.from_lists(
                    result.errors or ["Order build failed"], result.warnings
                ),
                history=[LifecycleStatus.INVALID],
            )

        lifecycle = self.create(result.order)
        for warning in result.warnings:
            if warning not in lifecycle.validation.warnings:
                lifecycle.validation.warnings.append(warning)
        return lifecycle

    def _transition(self, lifecycle: OrderLifecycle, target: LifecycleStatus) -> List[str]:
        if (lifecycle.status, target) not in _TRANSITIONS:
            return [f"Illegal transition: {lifecycle.status.value} -> {target.value}"]
        lifecycle.status = target
        lifecycle.history.append(target)
        return []

    def _invalidate(self, lifecycle: OrderLifecycle, errors: List[str]) -> OrderLifecycle:
        lifecycle.validation = ValidationResult.from_lists(
            errors, lifecycle.validation.warnings
        )
        if lifecycle.status not in TERMINAL_STATES:
            self._transition(lifecycle, LifecycleStatus.INVALID)
        logger.warning("Order lifecycle invalid: %s", "; ".join(errors))
        return lifecycle

    async def sign(self, lifecycle: OrderLifecycle, signer: TypedDataSigner) -> OrderLifecycle:
        """Sign a created order, then re-validate it.

        Args:
            lifecycle: Lifecycle in ``created`` status
            signer: Signer that implements TypedDataSigner protocol

        Returns:
            The same lifecycle, now ``ready_to_fill`` or ``invalid``
        """
        if lifecycle.status != LifecycleStatus.CREATED:
            # only terminal states are observable outside this controller
            logger.warning(
                "Illegal transition: %s -> %s",
                lifecycle.status.value,
                LifecycleStatus.SIGNED.value,
            )
            return lifecycle

        validation = validate_consistency(lifecycle.order)
        if not validation.is_valid:
            return self._invalidate(
                lifecycle, [f"Cannot sign invalid ZK order: {', '.join(validation.errors)}"]
            )

        try:
            signature = await sign_order_with_signer(signer, lifecycle.order.order, self.config)
        except HiddenOrderError as e:
            return self._invalidate(lifecycle, [f"Lifecycle processing failed: {e}"])

        lifecycle.signature = signature
        self._transition(lifecycle, LifecycleStatus.SIGNED)
        return self._revalidate(lifecycle)

    def _revalidate(self, lifecycle: OrderLifecycle) -> OrderLifecycle:
        validation = validate_consistency(lifecycle.order)
        if not validation.is_valid:
            return self._invalidate(lifecycle, validation.errors)

        warnings = list(lifecycle.validation.warnings)
        for warning in validation.warnings:
            if warning not in warnings:
                warnings.append(warning)
        if not verify_order_signature(
            lifecycle.order.order,
            lifecycle.signature,
            self.config,
            lifecycle.order.order.maker,
        ):
            warnings.append("Signature does not recover to the maker address")

        lifecycle.validation = ValidationResult.from_lists([], warnings)
        self._transition(lifecycle, LifecycleStatus.VALIDATED)
        self._transition(lifecycle, LifecycleStatus.READY_TO_FILL)
        logger.info("Order %s ready to fill", hex(lifecycle.order.order.salt))
        return lifecycle

    async def process(self, zk_order: ZKEnabledOrder, signer: TypedDataSigner) -> OrderLifecycle:
        """Create, sign and validate in one call."""
        lifecycle = self.create(zk_order)
        if lifecycle.status == LifecycleStatus.INVALID:
            return lifecycle
        return await self.sign(lifecycle, signer)

    def prepare_for_fill(self, lifecycle: OrderLifecycle) -> FillPreparation:
        """Extract ``(r, vs, extension)`` from a ready-to-fill lifecycle.

        Never raises; any other status returns the accumulated errors.
        """
        if lifecycle.status != LifecycleStatus.READY_TO_FILL or lifecycle.signature is None:
            return FillPreparation(
                fill_args=None,
                errors=["Order is not ready for fill", *lifecycle.validation.errors],
            )

        order = lifecycle.order.order
        return FillPreparation(
            fill_args=FillArgs(
                order=order,
                r=lifecycle.signature.r,
                vs=lifecycle.signature.vs,
                extension=order.extension,
            )
        )


def estimate_lifecycle_gas(zk_order: ZKEnabledOrder) -> Dict[str, int]:
    """Coarse gas breakdown for an order's lifecycle."""
    zk_proof_gas = zk_order.zk_metadata.extension_data.gas_estimate
    return {
        "order_creation": zk_proof_gas,
        "signing": SIGNING_OVERHEAD_GAS,
        "validation": VALIDATION_GAS,
        "total": BASE_TRANSACTION_GAS + zk_proof_gas + SIGNING_OVERHEAD_GAS + VALIDATION_GAS,
    }
