"""Taker Evaluator.

Checks a taker runs before submitting a fill. A taker never sees the
maker's secret thresholds, so everything here works from public order
fields and live chain state. Passing these checks does not mean the fill
will succeed: the proof check at fill time is the only enforcement of the
hidden constraints.

Chain queries are bounded by ``TakerConfig.query_timeout``. A failed or
timed-out query degrades to a warning rather than an error.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from eth_utils import is_address

from .fill import build_taker_traits, encode_fill_order_args
from .types import LifecycleStatus, Order, OrderLifecycle, TakerIssue
from ..chain import ChainReader
from ..config import ROUTER_ADDRESS
from ..errors import ChainQueryError, ConsistencyError, ParameterError
from ..zk.types import PRICE_PRECISION

logger = logging.getLogger(__name__)

DEFAULT_SLIPPAGE_TOLERANCE_BPS = 50
HIGH_SLIPPAGE_BPS = 500
DEADLINE_WARNING_SECONDS = 300
BALANCE_BUFFER_PERCENT = 105
SMALL_FILL_PERCENT = 10
DEFAULT_FILL_GAS_LIMIT = 300_000
# Typical fill without extension, used when it cannot be simulated
FALLBACK_STANDARD_FILL_GAS = 100_000
EFFICIENT_OVERHEAD_PERCENT = 20
ACCEPTABLE_OVERHEAD_PERCENT = 50


@dataclass
class TakerConfig:
    """Taker-side settings."""

    taker_address: str
    """Address that will submit the fill."""

    slippage_tolerance_bps: int = DEFAULT_SLIPPAGE_TOLERANCE_BPS
    """Slippage tolerance in basis points (50 = 0.5%)."""

    deadline: Optional[int] = None
    """Unix timestamp after which the taker will not fill."""

    enable_balance_checks: bool = True

    query_timeout: float = 10.0
    """Seconds allowed for each chain query."""

    router_address: str = ROUTER_ADDRESS


@dataclass
class RequiredBalance:
    asset: str
    amount: int
    current: Optional[int] = None


@dataclass
class TakerValidationResult:
    """Outcome of the taker-side checks."""

    can_fill: bool
    severity: Literal["success", "warning", "error"]
    issues: List[TakerIssue] = field(default_factory=list)
    required_balance: Optional[RequiredBalance] = None

    @property
    def errors(self) -> List[TakerIssue]:
        return [issue for issue in self.issues if issue.type == "error"]

    @property
    def warnings(self) -> List[TakerIssue]:
        return [issue for issue in self.issues if issue.type == "warning"]


@dataclass
class CanFillResult:
    can_fill: bool
    reason: Optional[str] = None
    quick_fix: Optional[str] = None


@dataclass
class FillParameterValidation:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    optimizations: List[str] = field(default_factory=list)


@dataclass
class PreparedFill:
    """Arguments for ``fillOrderArgs`` plus the encoded calldata."""

    order: Order
    r: str
    vs: str
    fill_amount: int
    taker_traits: int
    taker_args: bytes
    gas_limit: int
    target: str
    calldata: bytes


@dataclass
class GasComparison:
    zk_fill_gas: int
    standard_fill_gas: int
    overhead: int
    overhead_percentage: int
    recommendation: Literal["efficient", "acceptable", "expensive"]


def _now(now: Optional[int]) -> int:
    return int(time.time()) if now is None else now


def _same_address(a: str, b: str) -> bool:
    return a.lower() == b.lower()


async def validate_for_taker(
    lifecycle: OrderLifecycle,
    config: TakerConfig,
    reader: Optional[ChainReader] = None,
    fill_amount: Optional[int] = None,
    now: Optional[int] = None,
) -> TakerValidationResult:
    """Run every taker-side check against an order.

    Args:
        lifecycle: Order lifecycle received from the maker
        config: Taker configuration
        reader: Chain reader for the balance check (optional)
        fill_amount: Intended fill in taking-asset units (default: whole order)
        now: Current unix time (default: system clock)

    Returns:
        TakerValidationResult; ``can_fill`` is true when there are no errors
    """
    issues: List[TakerIssue] = []

    if lifecycle.status != LifecycleStatus.READY_TO_FILL:
        issues.append(
            TakerIssue("error", "order", f"Order not ready to fill: status is '{lifecycle.status.value}'")
        )
    if lifecycle.signature is None:
        issues.append(TakerIssue("error", "order", "Missing order signature"))

    if lifecycle.order is None:
        issues.append(TakerIssue("error", "order", "Missing order"))
        return _result(issues, None)

    order = lifecycle.order.order
    if not order.extension:
        issues.append(TakerIssue("error", "zk", "Missing ZK extension data"))

    if order.making_amount > 0 and order.taking_amount * PRICE_PRECISION // order.making_amount == 0:
        issues.append(TakerIssue("warning", "order", "Exchange rate appears to be zero or very small"))

    required_balance: Optional[RequiredBalance] = None
    if config.enable_balance_checks:
        required = order.taking_amount if fill_amount is None else fill_amount
        required_balance = RequiredBalance(asset=order.taker_asset, amount=required)
        if reader is None:
            issues.append(TakerIssue("info", "balance", "Balance check skipped: no chain reader"))
        else:
            try:
                current = await asyncio.wait_for(
                    reader.balance_of(order.taker_asset, config.taker_address),
                    timeout=config.query_timeout,
                )
            except Exception as e:
                # any reader failure, including timeouts, only degrades the check
                logger.warning("Could not check taker balance: %s", str(e) or type(e).__name__)
                issues.append(TakerIssue("warning", "network", "Could not check taker balance"))
            else:
                required_balance.current = current
                if current < required:
                    issues.append(
                        TakerIssue("error", "balance", f"Insufficient balance: have {current}, need {required}")
                    )
                elif current * 100 < required * BALANCE_BUFFER_PERCENT:
                    issues.append(
                        TakerIssue(
                            "warning",
                            "balance",
                            "Balance is close to required amount (less than 5% buffer)",
                        )
                    )

    if config.deadline is not None:
        current_time = _now(now)
        if config.deadline <= current_time:
            issues.append(TakerIssue("error", "order", "Order deadline has passed"))
        elif config.deadline - current_time < DEADLINE_WARNING_SECONDS:
            issues.append(
                TakerIssue("warning", "order", "Order deadline is very soon (less than 5 minutes)")
            )

    if _same_address(config.taker_address, order.maker):
        issues.append(
            TakerIssue("warning", "order", "Taker and maker are the same address (self-dealing)")
        )

    return _result(issues, required_balance)


def _result(
    issues: List[TakerIssue], required_balance: Optional[RequiredBalance]
) -> TakerValidationResult:
    has_errors = any(issue.type == "error" for issue in issues)
    has_warnings = any(issue.type == "warning" for issue in issues)
    return TakerValidationResult(
        can_fill=not has_errors,
        severity="error" if has_errors else "warning" if has_warnings else "success",
        issues=issues,
        required_balance=required_balance,
    )


def can_fill(lifecycle: OrderLifecycle, taker_address: str, fill_amount: int) -> CanFillResult:
    """Quick pre-flight check without chain access."""
    if lifecycle.status != LifecycleStatus.READY_TO_FILL:
        return CanFillResult(
            False,
            f"Order status is '{lifecycle.status.value}', not 'ready_to_fill'",
            "Wait for order preparation to complete",
        )
    if lifecycle.signature is None:
        return CanFillResult(False, "Order is not signed", "Request signature from maker")

    order = lifecycle.order.order
    if not order.extension:
        return CanFillResult(False, "Missing ZK extension data", "Verify this is a ZK order")
    if not is_address(taker_address):
        return CanFillResult(False, f"Invalid taker address: {taker_address}")
    if fill_amount <= 0:
        return CanFillResult(
            False, "Fill amount must be greater than zero", "Specify a positive fill amount"
        )
    if fill_amount > order.taking_amount:
        return CanFillResult(
            False,
            "Fill amount exceeds order taking amount",
            "Reduce fill amount or use partial fill",
        )
    return CanFillResult(True)


def validate_fill_parameters(
    fill_amount: int,
    order: Order,
    config: TakerConfig,
    now: Optional[int] = None,
) -> FillParameterValidation:
    """Sanity-check a fill amount and the taker's own settings."""
    errors: List[str] = []
    warnings: List[str] = []
    optimizations: List[str] = []

    if fill_amount <= 0:
        errors.append("Fill amount must be greater than zero")
    if fill_amount > order.taking_amount:
        errors.append(f"Fill amount {fill_amount} exceeds order taking amount {order.taking_amount}")

    if 0 < fill_amount < order.taking_amount:
        fill_percentage = fill_amount * 100 // order.taking_amount
        if fill_percentage < SMALL_FILL_PERCENT:
            warnings.append(
                f"Very small fill ({fill_percentage}% of order) - consider larger amount for efficiency"
            )
        optimizations.append("Consider filling the complete order to maximize efficiency")

    if config.slippage_tolerance_bps > HIGH_SLIPPAGE_BPS:
        warnings.append(
            f"High slippage tolerance ({config.slippage_tolerance_bps / 100}%) "
            "may result in unfavorable fills"
        )

    if config.deadline is not None and config.deadline - _now(now) < DEADLINE_WARNING_SECONDS:
        warnings.append("Tight deadline - ensure quick execution")

    return FillParameterValidation(
        is_valid=not errors, errors=errors, warnings=warnings, optimizations=optimizations
    )


def prepare_fill_arguments(
    lifecycle: OrderLifecycle,
    config: TakerConfig,
    fill_amount: int,
    gas_limit: Optional[int] = None,
) -> PreparedFill:
    """Build taker traits, args and ``fillOrderArgs`` calldata.

    Raises:
        ConsistencyError: If the order is not ready, unsigned or has no extension
        ParameterError: If the fill amount is out of range
    """
    if lifecycle.status != LifecycleStatus.READY_TO_FILL:
        raise ConsistencyError(f"Cannot prepare fill: order status is '{lifecycle.status.value}'")
    if lifecycle.signature is None:
        raise ConsistencyError("Cannot prepare fill: missing signature")

    order = lifecycle.order.order
    if fill_amount <= 0:
        raise ParameterError("Fill amount must be greater than zero")
    if fill_amount > order.taking_amount:
        raise ParameterError(
            f"Fill amount {fill_amount} exceeds order taking amount {order.taking_amount}"
        )
    if not order.extension:
        raise ConsistencyError("Cannot prepare ZK fill: missing extension data")

    taker_traits = build_taker_traits(
        making_amount=False, extension=order.extension, target=config.taker_address
    )
    signature = lifecycle.signature
    return PreparedFill(
        order=order,
        r=signature.r,
        vs=signature.vs,
        fill_amount=fill_amount,
        taker_traits=taker_traits.traits,
        taker_args=taker_traits.args,
        gas_limit=gas_limit or DEFAULT_FILL_GAS_LIMIT,
        target=config.taker_address,
        calldata=encode_fill_order_args(
            order, signature.r, signature.vs, fill_amount, taker_traits.traits, taker_traits.args
        ),
    )


async def estimate_fill_gas(
    lifecycle: OrderLifecycle,
    config: TakerConfig,
    fill_amount: int,
    reader: ChainReader,
) -> GasComparison:
    """Compare simulated gas of the ZK fill against the same fill without extension.

    Raises:
        ConsistencyError: If the order is not ready to fill
        ChainQueryError: If the ZK fill cannot be simulated
    """
    prepared = prepare_fill_arguments(lifecycle, config, fill_amount)

    try:
        zk_fill_gas = await asyncio.wait_for(
            reader.estimate_gas(
                {"from": config.taker_address, "to": config.router_address, "data": prepared.calldata}
            ),
            timeout=config.query_timeout,
        )
    except asyncio.TimeoutError as e:
        raise ChainQueryError("Gas estimation timed out", cause=e) from e
    except ChainQueryError:
        raise
    except Exception as e:
        raise ChainQueryError(f"Gas estimation failed: {e}", cause=e) from e

    standard = build_taker_traits(making_amount=False, target=config.taker_address)
    standard_calldata = encode_fill_order_args(
        prepared.order, prepared.r, prepared.vs, fill_amount, standard.traits, standard.args
    )
    try:
        standard_fill_gas = await asyncio.wait_for(
            reader.estimate_gas(
                {"from": config.taker_address, "to": config.router_address, "data": standard_calldata}
            ),
            timeout=config.query_timeout,
        )
    except Exception as e:
        logger.debug("Standard fill simulation failed, using fallback: %s", e)
        standard_fill_gas = FALLBACK_STANDARD_FILL_GAS
    if standard_fill_gas <= 0:
        logger.debug("Standard fill simulation returned %s, using fallback", standard_fill_gas)
        standard_fill_gas = FALLBACK_STANDARD_FILL_GAS

    overhead = zk_fill_gas - standard_fill_gas
    overhead_percentage = overhead * 100 // standard_fill_gas

    if overhead_percentage < EFFICIENT_OVERHEAD_PERCENT:
        recommendation = "efficient"
    elif overhead_percentage < ACCEPTABLE_OVERHEAD_PERCENT:
        recommendation = "acceptable"
    else:
        recommendation = "expensive"

    return GasComparison(
        zk_fill_gas=zk_fill_gas,
        standard_fill_gas=standard_fill_gas,
        overhead=overhead,
        overhead_percentage=overhead_percentage,
        recommendation=recommendation,
    )


def taker_summary(lifecycle: OrderLifecycle, config: TakerConfig) -> Dict[str, Any]:
    """Human-oriented summary with a fill / caution / avoid recommendation."""
    zk_features: List[str] = []
    risk_factors: List[str] = []

    order = lifecycle.order.order if lifecycle.order is not None else None
    if lifecycle.order is not None:
        zk_features.append("Hidden price thresholds (commitment-based)")
    if order is not None and len(order.extension) > 50:
        zk_features.append("Complex ZK verification logic")

    if lifecycle.status != LifecycleStatus.READY_TO_FILL:
        risk_factors.append("Order not yet ready for filling")
    if lifecycle.signature is None:
        risk_factors.append("Order not signed by maker")
    if order is not None and _same_address(config.taker_address, order.maker):
        risk_factors.append("Self-dealing transaction")

    rate = 0
    if order is not None and order.making_amount > 0:
        rate = order.taking_amount * PRICE_PRECISION // order.making_amount

    if not risk_factors:
        recommendation, reasoning = "fill", "Order appears ready and safe to fill"
    elif len(risk_factors) <= 2 and "Order not signed by maker" not in risk_factors:
        recommendation, reasoning = "caution", "Minor issues present, but fillable with care"
    else:
        recommendation, reasoning = "avoid", "Significant issues present, avoid filling"

    return {
        "status": lifecycle.status.value,
        "exchange_rate": f"1 making token = {rate} taking tokens (scaled by 1e18)",
        "zk_features": zk_features,
        "risk_factors": risk_factors,
        "recommendation": recommendation,
        "reasoning": reasoning,
    }
