"""Hidden-parameter ZK limit orders for the 1inch limit order protocol.

A maker commits to a secret minimum price and amount, proves the public
order satisfies them, and embeds the proof check as an order predicate.
Takers see only the public order; the predicate enforces the hidden
thresholds at fill time.

Subpackages:
- ``hidden_orders_sdk.zk``: commitments, proofs and proving backends
- ``hidden_orders_sdk.order``: salt, predicates, building, signing, lifecycle, taker checks
"""

from .config import (
    ROUTER_ADDRESS,
    ZKOrderConfig,
    ResolvedZKOrderConfig,
    resolve_config,
    load_config_from_env,
)
from .errors import (
    HiddenOrderError,
    StructuralError,
    ExtensionHashTooLarge,
    ProofFormatError,
    PredicateEncodingError,
    ConsistencyError,
    SaltInconsistency,
    ParameterError,
    OrderParamError,
    SecretParameterError,
    ExternalFailure,
    ProvingBackendError,
    SignerError,
    ChainQueryError,
)
from .chain import ChainReader, Web3ChainReader
from .utils import ZERO_ADDRESS, format_units, parse_units

__version__ = "0.1.0"

__all__ = [
    # Config
    "ROUTER_ADDRESS",
    "ZKOrderConfig",
    "ResolvedZKOrderConfig",
    "resolve_config",
    "load_config_from_env",
    # Errors
    "HiddenOrderError",
    "StructuralError",
    "ExtensionHashTooLarge",
    "ProofFormatError",
    "PredicateEncodingError",
    "ConsistencyError",
    "SaltInconsistency",
    "ParameterError",
    "OrderParamError",
    "SecretParameterError",
    "ExternalFailure",
    "ProvingBackendError",
    "SignerError",
    "ChainQueryError",
    # Chain
    "ChainReader",
    "Web3ChainReader",
    # Utils
    "ZERO_ADDRESS",
    "format_units",
    "parse_units",
]
