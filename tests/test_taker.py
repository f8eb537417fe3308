"""Tests for the taker evaluator."""

import pytest
from eth_abi import decode

from hidden_orders_sdk.errors import ChainQueryError, ConsistencyError, ParameterError
from hidden_orders_sdk.order import (
    TakerConfig,
    can_fill,
    estimate_fill_gas,
    get_extension_predicate,
    prepare_fill_arguments,
    taker_summary,
    validate_fill_parameters,
    validate_for_taker,
)
from hidden_orders_sdk.order.fill import (
    ARGS_HAS_TARGET_FLAG,
    FILL_ORDER_ARGS_SELECTOR,
    MAKER_AMOUNT_FLAG,
)
from hidden_orders_sdk.zk import SecretParameters, commit, decode_predicate_call, decode_proof

from conftest import (
    MAKING_AMOUNT,
    SECRET_AMOUNT,
    SECRET_PRICE,
    NONCE,
    TAKER_ADDRESS,
    TAKING_AMOUNT,
    TEST_ADDRESS,
    USDC,
    FakeChainReader,
)

NOW = 1_700_000_000


@pytest.fixture
def taker_config() -> TakerConfig:
    return TakerConfig(taker_address=TAKER_ADDRESS)


def messages(result):
    return [issue.message for issue in result.issues]


class HiddenThresholdVerifier:
    """Test double for the on-chain predicate verifier.

    Holds the commitment opening the way the circuit's witness does, and
    evaluates the order's predicate against the making amount of a fill.
    """

    def __init__(self, secret_params: SecretParameters):
        self.secret_params = secret_params

    def evaluate(self, extension: bytes, fill_making_amount: int) -> bool:
        predicate = get_extension_predicate(extension)
        threshold, static_call = decode(["uint256", "bytes"], predicate[4:])
        _, calldata = decode(["address", "bytes"], static_call[4:])
        valid, commitment, nonce, offered_price, _ = decode_proof(
            decode_predicate_call(calldata)
        ).public_signals

        secrets = self.secret_params
        accepted = (
            valid == 1
            and commitment == commit(secrets.secret_price, secrets.secret_amount, nonce)
            and offered_price >= secrets.secret_price
            and fill_making_amount >= secrets.secret_amount
        )
        return int(accepted) > threshold


class TestValidateForTaker:
    """Tests for the full taker-side validation."""

    async def test_ready_order(self, ready_lifecycle, taker_config):
        """Test that a ready order with ample balance has no issues."""
        reader = FakeChainReader(balance=TAKING_AMOUNT * 2)
        result = await validate_for_taker(ready_lifecycle, taker_config, reader)

        assert result.can_fill
        assert result.severity == "success"
        assert result.issues == []
        assert result.required_balance.amount == TAKING_AMOUNT
        assert result.required_balance.current == TAKING_AMOUNT * 2
        assert reader.balance_calls == [(USDC, TAKER_ADDRESS)]

    async def test_insufficient_balance(self, ready_lifecycle, taker_config):
        """Test that a short balance is an error."""
        reader = FakeChainReader(balance=TAKING_AMOUNT - 1)
        result = await validate_for_taker(ready_lifecycle, taker_config, reader)

        assert not result.can_fill
        assert result.severity == "error"
        assert result.errors[0].category == "balance"
        assert result.errors[0].message == (
            f"Insufficient balance: have {TAKING_AMOUNT - 1}, need {TAKING_AMOUNT}"
        )

    async def test_thin_balance_buffer(self, ready_lifecycle, taker_config):
        """Test the 5% buffer warning."""
        reader = FakeChainReader(balance=TAKING_AMOUNT * 104 // 100)
        result = await validate_for_taker(ready_lifecycle, taker_config, reader)

        assert result.can_fill
        assert result.severity == "warning"
        assert "Balance is close to required amount (less than 5% buffer)" in messages(result)

    async def test_partial_fill_amount(self, ready_lifecycle, taker_config):
        """Test that the balance requirement follows the fill amount."""
        reader = FakeChainReader(balance=TAKING_AMOUNT // 2)
        result = await validate_for_taker(
            ready_lifecycle, taker_config, reader, fill_amount=TAKING_AMOUNT // 4
        )
        assert result.can_fill
        assert result.required_balance.amount == TAKING_AMOUNT // 4

    @pytest.mark.parametrize(
        "error", [ChainQueryError("rpc down"), ConnectionError("rpc down"), OSError("reset")]
    )
    async def test_balance_query_failure_is_warning(self, ready_lifecycle, taker_config, error):
        """Test that reader failures are not mistaken for insufficient funds."""
        reader = FakeChainReader(balance=error)
        result = await validate_for_taker(ready_lifecycle, taker_config, reader)

        assert result.can_fill
        assert result.warnings[0].category == "network"
        assert result.warnings[0].message == "Could not check taker balance"

    async def test_balance_query_timeout_is_warning(self, ready_lifecycle):
        """Test that slow balance queries degrade to a warning."""
        config = TakerConfig(taker_address=TAKER_ADDRESS, query_timeout=0.01)
        reader = FakeChainReader(balance=TAKING_AMOUNT * 2, delay=1)
        result = await validate_for_taker(ready_lifecycle, config, reader)

        assert result.can_fill
        assert "Could not check taker balance" in messages(result)

    async def test_no_reader(self, ready_lifecycle, taker_config):
        """Test that a missing reader is informational."""
        result = await validate_for_taker(ready_lifecycle, taker_config)
        assert result.can_fill
        assert result.severity == "success"
        assert result.issues[0].type == "info"

    async def test_balance_checks_disabled(self, ready_lifecycle):
        """Test that balance checks can be turned off."""
        config = TakerConfig(taker_address=TAKER_ADDRESS, enable_balance_checks=False)
        reader = FakeChainReader(balance=0)
        result = await validate_for_taker(ready_lifecycle, config, reader)
        assert result.issues == []
        assert reader.balance_calls == []

    async def test_deadline_passed(self, ready_lifecycle):
        """Test that a passed deadline is an error."""
        config = TakerConfig(taker_address=TAKER_ADDRESS, deadline=NOW - 1)
        result = await validate_for_taker(
            ready_lifecycle, config, FakeChainReader(balance=TAKING_AMOUNT * 2), now=NOW
        )
        assert not result.can_fill
        assert "Order deadline has passed" in messages(result)

    async def test_deadline_soon(self, ready_lifecycle):
        """Test the five-minute warning window."""
        config = TakerConfig(taker_address=TAKER_ADDRESS, deadline=NOW + 120)
        result = await validate_for_taker(
            ready_lifecycle, config, FakeChainReader(balance=TAKING_AMOUNT * 2), now=NOW
        )
        assert result.can_fill
        assert "Order deadline is very soon (less than 5 minutes)" in messages(result)

    async def test_deadline_far(self, ready_lifecycle):
        """Test that a distant deadline is silent."""
        config = TakerConfig(taker_address=TAKER_ADDRESS, deadline=NOW + 3600)
        result = await validate_for_taker(
            ready_lifecycle, config, FakeChainReader(balance=TAKING_AMOUNT * 2), now=NOW
        )
        assert result.issues == []

    async def test_self_dealing(self, ready_lifecycle):
        """Test that maker == taker is a warning."""
        config = TakerConfig(taker_address=TEST_ADDRESS.lower())
        result = await validate_for_taker(
            ready_lifecycle, config, FakeChainReader(balance=TAKING_AMOUNT * 2)
        )
        assert result.can_fill
        assert "Taker and maker are the same address (self-dealing)" in messages(result)

    async def test_not_ready(self, controller, built_order, taker_config):
        """Test that status, signature and extension are all checked."""
        lifecycle = controller.create(built_order)
        lifecycle.order.order.extension = b""

        result = await validate_for_taker(
            lifecycle, taker_config, FakeChainReader(balance=TAKING_AMOUNT * 2)
        )

        assert not result.can_fill
        found = messages(result)
        assert "Order not ready to fill: status is 'created'" in found
        assert "Missing order signature" in found
        assert "Missing ZK extension data" in found


class TestCanFill:
    """Tests for the quick pre-flight check."""

    async def test_can_fill(self, ready_lifecycle):
        """Test a valid fill."""
        assert can_fill(ready_lifecycle, TAKER_ADDRESS, TAKING_AMOUNT).can_fill

    async def test_zero_amount(self, ready_lifecycle):
        """Test that the amount must be positive."""
        result = can_fill(ready_lifecycle, TAKER_ADDRESS, 0)
        assert not result.can_fill
        assert result.quick_fix == "Specify a positive fill amount"

    async def test_amount_too_large(self, ready_lifecycle):
        """Test that the amount is bounded by the taking amount."""
        result = can_fill(ready_lifecycle, TAKER_ADDRESS, TAKING_AMOUNT + 1)
        assert result.reason == "Fill amount exceeds order taking amount"

    async def test_not_ready(self, controller, built_order):
        """Test that only ready orders pass."""
        result = can_fill(controller.create(built_order), TAKER_ADDRESS, 1)
        assert not result.can_fill
        assert "created" in result.reason

    async def test_invalid_taker(self, ready_lifecycle):
        """Test that the taker address is checked."""
        assert not can_fill(ready_lifecycle, "0x1234", 1).can_fill


class TestFillParameters:
    """Tests for fill parameter checks."""

    async def test_full_fill(self, built_order, taker_config):
        """Test that a full fill has no findings."""
        result = validate_fill_parameters(TAKING_AMOUNT, built_order.order, taker_config)
        assert result.is_valid
        assert result.warnings == []
        assert result.optimizations == []

    async def test_small_partial_fill(self, built_order, taker_config):
        """Test the small-fill warning and the complete-fill suggestion."""
        result = validate_fill_parameters(TAKING_AMOUNT // 20, built_order.order, taker_config)
        assert result.is_valid
        assert result.warnings[0].startswith("Very small fill (5% of order)")
        assert "Consider filling the complete order to maximize efficiency" in result.optimizations

    async def test_out_of_range(self, built_order, taker_config):
        """Test amount bounds."""
        assert not validate_fill_parameters(0, built_order.order, taker_config).is_valid
        assert not validate_fill_parameters(TAKING_AMOUNT + 1, built_order.order, taker_config).is_valid

    async def test_high_slippage(self, built_order):
        """Test the slippage warning above 5%."""
        config = TakerConfig(taker_address=TAKER_ADDRESS, slippage_tolerance_bps=600)
        result = validate_fill_parameters(TAKING_AMOUNT, built_order.order, config)
        assert result.warnings == ["High slippage tolerance (6.0%) may result in unfavorable fills"]

    async def test_tight_deadline(self, built_order):
        """Test the tight deadline warning."""
        config = TakerConfig(taker_address=TAKER_ADDRESS, deadline=NOW + 60)
        result = validate_fill_parameters(TAKING_AMOUNT, built_order.order, config, now=NOW)
        assert "Tight deadline - ensure quick execution" in result.warnings


class TestPrepareFillArguments:
    """Tests for building fill calldata."""

    async def test_prepare(self, ready_lifecycle, taker_config):
        """Test that the extension travels in the taker args."""
        prepared = prepare_fill_arguments(ready_lifecycle, taker_config, TAKING_AMOUNT)
        order = ready_lifecycle.order.order

        assert prepared.r == ready_lifecycle.signature.r
        assert prepared.vs == ready_lifecycle.signature.vs
        assert prepared.taker_traits & ARGS_HAS_TARGET_FLAG
        assert not prepared.taker_traits & MAKER_AMOUNT_FLAG
        assert (prepared.taker_traits >> 224) & 0xFFFFFF == len(order.extension)
        assert prepared.taker_args == bytes.fromhex(TAKER_ADDRESS[2:]) + order.extension
        assert prepared.gas_limit == 300_000
        assert prepared.calldata[:4] == FILL_ORDER_ARGS_SELECTOR

    async def test_custom_gas_limit(self, ready_lifecycle, taker_config):
        """Test that a gas limit can be supplied."""
        prepared = prepare_fill_arguments(ready_lifecycle, taker_config, 1, gas_limit=500_000)
        assert prepared.gas_limit == 500_000

    async def test_not_ready(self, controller, built_order, taker_config):
        """Test that unsigned orders cannot be prepared."""
        with pytest.raises(ConsistencyError, match="status"):
            prepare_fill_arguments(controller.create(built_order), taker_config, 1)

    async def test_bad_amount(self, ready_lifecycle, taker_config):
        """Test amount bounds."""
        with pytest.raises(ParameterError):
            prepare_fill_arguments(ready_lifecycle, taker_config, 0)
        with pytest.raises(ParameterError, match="exceeds"):
            prepare_fill_arguments(ready_lifecycle, taker_config, TAKING_AMOUNT + 1)


class TestEstimateFillGas:
    """Tests for the ZK-versus-standard gas comparison."""

    @pytest.mark.parametrize(
        "zk_gas,standard_gas,expected",
        [
            (110_000, 100_000, "efficient"),
            (130_000, 100_000, "acceptable"),
            (150_000, 100_000, "expensive"),
        ],
    )
    async def test_classification(self, ready_lifecycle, taker_config, zk_gas, standard_gas, expected):
        """Test the overhead bands."""
        reader = FakeChainReader(gas_estimates=[zk_gas, standard_gas])
        comparison = await estimate_fill_gas(ready_lifecycle, taker_config, TAKING_AMOUNT, reader)

        assert comparison.recommendation == expected
        assert comparison.overhead == zk_gas - standard_gas
        assert len(reader.gas_calls[0]["data"]) > len(reader.gas_calls[1]["data"])

    async def test_standard_fallback(self, ready_lifecycle, taker_config):
        """Test the fallback when the standard fill cannot be simulated."""
        reader = FakeChainReader(gas_estimates=[130_000, ChainQueryError("reverted")])
        comparison = await estimate_fill_gas(ready_lifecycle, taker_config, TAKING_AMOUNT, reader)
        assert comparison.standard_fill_gas == 100_000
        assert comparison.overhead_percentage == 30

    async def test_zk_simulation_failure(self, ready_lifecycle, taker_config):
        """Test that a failing ZK simulation raises."""
        reader = FakeChainReader(gas_estimates=[ChainQueryError("reverted")])
        with pytest.raises(ChainQueryError):
            await estimate_fill_gas(ready_lifecycle, taker_config, TAKING_AMOUNT, reader)

    async def test_zk_simulation_connection_error(self, ready_lifecycle, taker_config):
        """Test that non-ChainQueryError reader failures are wrapped."""
        reader = FakeChainReader(gas_estimates=[ConnectionError("rpc down")])
        with pytest.raises(ChainQueryError, match="rpc down"):
            await estimate_fill_gas(ready_lifecycle, taker_config, TAKING_AMOUNT, reader)

    @pytest.mark.parametrize("standard_gas", [0, ConnectionError("rpc down")])
    async def test_unusable_standard_estimate(self, ready_lifecycle, taker_config, standard_gas):
        """Test that a zero or failing standard estimate uses the fallback."""
        reader = FakeChainReader(gas_estimates=[150_000, standard_gas])
        comparison = await estimate_fill_gas(ready_lifecycle, taker_config, TAKING_AMOUNT, reader)
        assert comparison.standard_fill_gas == 100_000
        assert comparison.overhead_percentage == 50
        assert comparison.recommendation == "expensive"


class TestTakerSummary:
    """Tests for the taker summary."""

    async def test_ready_order(self, ready_lifecycle, taker_config):
        """Test the fill recommendation."""
        summary = taker_summary(ready_lifecycle, taker_config)
        assert summary["recommendation"] == "fill"
        assert summary["risk_factors"] == []
        assert "Hidden price thresholds (commitment-based)" in summary["zk_features"]

    async def test_self_dealing(self, ready_lifecycle):
        """Test the caution recommendation."""
        summary = taker_summary(ready_lifecycle, TakerConfig(taker_address=TEST_ADDRESS))
        assert summary["recommendation"] == "caution"

    async def test_unsigned(self, controller, built_order, taker_config):
        """Test the avoid recommendation."""
        summary = taker_summary(controller.create(built_order), taker_config)
        assert summary["recommendation"] == "avoid"
        assert "Order not signed by maker" in summary["risk_factors"]


class TestBelowThresholdFill:
    """A taker cannot see the secret minimum; only the predicate enforces it."""

    async def test_small_fill_passes_public_checks_but_fails_predicate(
        self, ready_lifecycle, taker_config, secret_params
    ):
        """Test that a fill below the secret amount is rejected at fill time."""
        order = ready_lifecycle.order.order
        fill_amount = TAKING_AMOUNT // 10
        fill_making_amount = fill_amount * MAKING_AMOUNT // TAKING_AMOUNT
        assert fill_making_amount < SECRET_AMOUNT

        assert can_fill(ready_lifecycle, TAKER_ADDRESS, fill_amount).can_fill
        result = await validate_for_taker(
            ready_lifecycle,
            taker_config,
            FakeChainReader(balance=TAKING_AMOUNT),
            fill_amount=fill_amount,
        )
        assert result.can_fill

        prepared = prepare_fill_arguments(ready_lifecycle, taker_config, fill_amount)
        verifier = HiddenThresholdVerifier(secret_params)
        assert not verifier.evaluate(prepared.taker_args[20:], fill_making_amount)

    async def test_full_fill_passes_predicate(self, ready_lifecycle, taker_config, secret_params):
        """Test that a fill above the secret thresholds is accepted."""
        prepared = prepare_fill_arguments(ready_lifecycle, taker_config, TAKING_AMOUNT)
        verifier = HiddenThresholdVerifier(secret_params)
        assert verifier.evaluate(prepared.taker_args[20:], MAKING_AMOUNT)

    async def test_wrong_opening_rejected(self, ready_lifecycle, taker_config):
        """Test that a verifier with other secrets rejects the proof."""
        prepared = prepare_fill_arguments(ready_lifecycle, taker_config, TAKING_AMOUNT)
        verifier = HiddenThresholdVerifier(
            SecretParameters(secret_price=SECRET_PRICE + 1, secret_amount=SECRET_AMOUNT, nonce=NONCE)
        )
        assert not verifier.evaluate(prepared.taker_args[20:], MAKING_AMOUNT)
