"""Shared fixtures: test wallet, proof fixtures built from real BN254 points, fakes."""

import asyncio
from typing import List, Optional, Sequence, Union

import pytest
from eth_account import Account
from py_ecc import bn128

from hidden_orders_sdk.order import (
    LifecycleController,
    LocalAccountSigner,
    OrderAssembler,
    OrderParams,
)
from hidden_orders_sdk.zk import ProofInputs, ProverOutput, SecretParameters, commit

# Test wallet (DO NOT use in production)
TEST_PRIVATE_KEY = "0x" + "ab" * 32
TEST_ACCOUNT = Account.from_key(TEST_PRIVATE_KEY)
TEST_ADDRESS = TEST_ACCOUNT.address

TAKER_PRIVATE_KEY = "0x" + "cd" * 32
TAKER_ADDRESS = Account.from_key(TAKER_PRIVATE_KEY).address

WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
PREDICATE_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"

SECRET_PRICE = 3_200_000_000
SECRET_AMOUNT = 2 * 10**18
NONCE = 123456789
MAKING_AMOUNT = 5 * 10**18
TAKING_AMOUNT = 17_500_000_000
OFFERED_PRICE = TAKING_AMOUNT * 10**18 // MAKING_AMOUNT


def g1_json(k: int) -> List[str]:
    """snarkjs-style projective G1 point for k*G."""
    x, y = bn128.multiply(bn128.G1, k)
    return [str(int(x)), str(int(y)), "1"]


def g2_json(k: int) -> List[List[str]]:
    """snarkjs-style projective G2 point for k*G2, Fp2 coefficients as (c0, c1)."""
    x, y = bn128.multiply(bn128.G2, k)
    return [
        [str(int(x.coeffs[0])), str(int(x.coeffs[1]))],
        [str(int(y.coeffs[0])), str(int(y.coeffs[1]))],
        ["1", "0"],
    ]


def make_proof_json(seed: int = 7) -> dict:
    return {
        "pi_a": g1_json(seed),
        "pi_b": g2_json(seed + 1),
        "pi_c": g1_json(seed + 2),
        "protocol": "groth16",
        "curve": "bn128",
    }


def make_prover_output(
    commitment: int,
    nonce: int,
    offered_price: int,
    offered_amount: int,
    valid: int = 1,
    seed: int = 7,
) -> ProverOutput:
    return ProverOutput.from_json(
        make_proof_json(seed),
        [valid, commitment, nonce, offered_price, offered_amount],
    )


class FakeProvingBackend:
    """Returns a structurally valid proof whose public signals echo the inputs."""

    def __init__(self, valid: int = 1, error: Optional[Exception] = None):
        self.valid = valid
        self.error = error
        self.calls: List[ProofInputs] = []

    async def prove(self, inputs: ProofInputs) -> ProverOutput:
        self.calls.append(inputs)
        if self.error is not None:
            raise self.error
        return make_prover_output(
            inputs.commit, inputs.nonce, inputs.offered_price, inputs.offered_amount, self.valid
        )


class FakeChainReader:
    """ChainReader double. Gas estimates are served in call order."""

    def __init__(
        self,
        balance: Union[int, Exception] = 0,
        gas_estimates: Sequence[Union[int, Exception]] = (),
        delay: float = 0,
    ):
        self.balance = balance
        self.gas_estimates = list(gas_estimates)
        self.delay = delay
        self.balance_calls: List[tuple] = []
        self.gas_calls: List[dict] = []

    async def balance_of(self, token: str, owner: str) -> int:
        self.balance_calls.append((token, owner))
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.balance, Exception):
            raise self.balance
        return self.balance

    async def estimate_gas(self, call: dict) -> int:
        self.gas_calls.append(call)
        value = self.gas_estimates.pop(0)
        if isinstance(value, Exception):
            raise value
        return value


class RejectingSigner:
    """Signer that fails the way a wallet does when the user rejects."""

    async def get_address(self) -> str:
        return TEST_ADDRESS

    async def sign_typed_data(self, params: dict) -> str:
        raise RuntimeError("User rejected the request")


@pytest.fixture
def secret_params() -> SecretParameters:
    return SecretParameters(secret_price=SECRET_PRICE, secret_amount=SECRET_AMOUNT, nonce=NONCE)


@pytest.fixture
def commitment(secret_params) -> int:
    return commit(secret_params.secret_price, secret_params.secret_amount, secret_params.nonce)


@pytest.fixture
def order_params() -> OrderParams:
    return OrderParams(
        maker=TEST_ADDRESS,
        maker_asset=WETH,
        taker_asset=USDC,
        making_amount=MAKING_AMOUNT,
        taking_amount=TAKING_AMOUNT,
    )


@pytest.fixture
def prover_output(commitment) -> ProverOutput:
    return make_prover_output(commitment, NONCE, OFFERED_PRICE, MAKING_AMOUNT)


@pytest.fixture
def zk_config() -> dict:
    return {"chain_id": 1, "predicate_address": PREDICATE_ADDRESS}


@pytest.fixture
def assembler(zk_config) -> OrderAssembler:
    return OrderAssembler(zk_config)


@pytest.fixture
def controller(zk_config) -> LifecycleController:
    return LifecycleController(zk_config)


@pytest.fixture
def signer() -> LocalAccountSigner:
    return LocalAccountSigner(TEST_PRIVATE_KEY)


@pytest.fixture
async def built_order(assembler, order_params, secret_params, prover_output):
    result = await assembler.build(order_params, secret_params, proof=prover_output)
    assert result.success, result.errors
    return result.order


@pytest.fixture
async def ready_lifecycle(controller, built_order, signer):
    return await controller.process(built_order, signer)
