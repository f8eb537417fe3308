"""Configuration for hidden-parameter orders.

User overrides come in as a ``ZKOrderConfig`` dict and are resolved into an
immutable ``ResolvedZKOrderConfig`` with every default applied.
"""

import os
from dataclasses import dataclass
from typing import Optional, TypedDict

from dotenv import load_dotenv
from eth_utils import is_address, to_checksum_address

# 1inch Aggregation Router v6 (same address on every supported chain)
ROUTER_ADDRESS = "0x111111125421cA6dc452d289314280a0f8842A65"

ENV_PREFIX = "HIDDEN_ORDERS_"


class ZKOrderConfig(TypedDict, total=False):
    """Configuration overrides for building, signing and evaluating orders."""

    chain_id: int
    """Chain ID used in the EIP-712 domain. Default: 1"""

    router_address: str
    """Limit order protocol contract (EIP-712 verifying contract)."""

    domain_name: str
    """EIP-712 domain name. Default: 1inch Aggregation Router"""

    domain_version: str
    """EIP-712 domain version. Default: 6"""

    predicate_address: str
    """Deployed hidden-parameter predicate verifier (optional)."""

    wasm_path: str
    """Compiled circuit witness generator used by the snarkjs backend."""

    zkey_path: str
    """Groth16 proving key used by the snarkjs backend."""

    predicate_gas_limit: int
    """Gas budget assumed for one ZK predicate call. Default: 300000"""

    query_timeout: float
    """Seconds allowed for each taker-side chain query. Default: 10"""

    acknowledge_truncated_commitment: bool
    """Silence the warning about the 96-bit commitment stored in the salt."""


@dataclass(frozen=True)
class ResolvedZKOrderConfig:
    """Resolved configuration with all defaults applied."""

    chain_id: int
    router_address: str
    domain_name: str
    domain_version: str
    predicate_address: Optional[str]
    wasm_path: Optional[str]
    zkey_path: Optional[str]
    predicate_gas_limit: int
    query_timeout: float
    acknowledge_truncated_commitment: bool


def resolve_config(config: Optional[ZKOrderConfig] = None) -> ResolvedZKOrderConfig:
    """Apply defaults to a configuration dict.

    Args:
        config: Optional overrides

    Returns:
        ResolvedZKOrderConfig

    Raises:
        ValueError: If an address is invalid or a numeric setting is out of range
    """
    config = config or {}

    router_address = config.get("router_address", ROUTER_ADDRESS)
    if not is_address(router_address):
        raise ValueError(f"Invalid router_address: {router_address}")

    predicate_address = config.get("predicate_address")
    if predicate_address is not None:
        if not is_address(predicate_address):
            raise ValueError(f"Invalid predicate_address: {predicate_address}")
        predicate_address = to_checksum_address(predicate_address)

    chain_id = config.get("chain_id", 1)
    if chain_id <= 0:
        raise ValueError(f"Invalid chain_id: {chain_id}")

    gas_limit = config.get("predicate_gas_limit", 300_000)
    if gas_limit <= 0:
        raise ValueError(f"Invalid predicate_gas_limit: {gas_limit}")

    query_timeout = config.get("query_timeout", 10.0)
    if query_timeout <= 0:
        raise ValueError(f"Invalid query_timeout: {query_timeout}")

    return ResolvedZKOrderConfig(
        chain_id=chain_id,
        router_address=to_checksum_address(router_address),
        domain_name=config.get("domain_name", "1inch Aggregation Router"),
        domain_version=config.get("domain_version", "6"),
        predicate_address=predicate_address,
        wasm_path=config.get("wasm_path"),
        zkey_path=config.get("zkey_path"),
        predicate_gas_limit=gas_limit,
        query_timeout=float(query_timeout),
        acknowledge_truncated_commitment=config.get(
            "acknowledge_truncated_commitment", False
        ),
    )


def load_config_from_env(dotenv_path: Optional[str] = None) -> ResolvedZKOrderConfig:
    """Build a resolved configuration from ``HIDDEN_ORDERS_*`` environment variables.

    A ``.env`` file is loaded first when present; variables already set in the
    environment win.
    """
    load_dotenv(dotenv_path)

    config: ZKOrderConfig = {}
    env = os.environ

    if env.get(ENV_PREFIX + "CHAIN_ID"):
        config["chain_id"] = int(env[ENV_PREFIX + "CHAIN_ID"])
    if env.get(ENV_PREFIX + "ROUTER_ADDRESS"):
        config["router_address"] = env[ENV_PREFIX + "ROUTER_ADDRESS"]
    if env.get(ENV_PREFIX + "DOMAIN_NAME"):
        config["domain_name"] = env[ENV_PREFIX + "DOMAIN_NAME"]
    if env.get(ENV_PREFIX + "DOMAIN_VERSION"):
        config["domain_version"] = env[ENV_PREFIX + "DOMAIN_VERSION"]
    if env.get(ENV_PREFIX + "PREDICATE_ADDRESS"):
        config["predicate_address"] = env[ENV_PREFIX + "PREDICATE_ADDRESS"]
    if env.get(ENV_PREFIX + "WASM_PATH"):
        config["wasm_path"] = env[ENV_PREFIX + "WASM_PATH"]
    if env.get(ENV_PREFIX + "ZKEY_PATH"):
        config["zkey_path"] = env[ENV_PREFIX + "ZKEY_PATH"]
    if env.get(ENV_PREFIX + "PREDICATE_GAS_LIMIT"):
        config["predicate_gas_limit"] = int(env[ENV_PREFIX + "PREDICATE_GAS_LIMIT"])
    if env.get(ENV_PREFIX + "QUERY_TIMEOUT"):
        config["query_timeout"] = float(env[ENV_PREFIX + "QUERY_TIMEOUT"])
    if env.get(ENV_PREFIX + "ACKNOWLEDGE_TRUNCATED_COMMITMENT"):
        config["acknowledge_truncated_commitment"] = env[
            ENV_PREFIX + "ACKNOWLEDGE_TRUNCATED_COMMITMENT"
        ].lower() in ("1", "true", "yes")

    return resolve_config(config)
