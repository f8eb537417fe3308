"""Order Signing for hidden-parameter orders.

Provides EIP-712 signing functions that work with various wallet types:
- eth_account.Account (direct signing)
- Any TypedDataSigner (browser wallets, remote signers)

The host protocol takes signatures in compact ``(r, vs)`` form, with the
recovery parity folded into the top bit of ``s``.
"""

import re
from typing import Any, Dict, Protocol, TypedDict, Union

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import is_address, keccak, to_checksum_address

from .types import ORDER_TYPES, Order, OrderSignature
from ..config import ResolvedZKOrderConfig
from ..errors import SignerError, StructuralError
from ..utils import as_bytes

SECP256K1_HALF_N = 0x7FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFF5D576E7357A4501DDFE92F46681B20A0

_BYTES32_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")
_SIGNATURE_PATTERN = re.compile(r"^0x[0-9a-fA-F]{130}$")


class EIP712Domain(TypedDict):
    """EIP-712 domain separator."""

    name: str
    version: str
    chainId: int
    verifyingContract: str


EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]


def create_eip712_domain(config: ResolvedZKOrderConfig) -> EIP712Domain:
    """Create the EIP-712 domain for the limit order protocol.

    Args:
        config: Resolved configuration (chain id, router, domain name/version)

    Returns:
        EIP-712 domain dictionary

    Raises:
        ValueError: If the router address is invalid
    """
    if not is_address(config.router_address):
        raise ValueError(f"Invalid router address: {config.router_address}")

    return {
        "name": config.domain_name,
        "version": config.domain_version,
        "chainId": config.chain_id,
        "verifyingContract": to_checksum_address(config.router_address),
    }


def build_order_typed_data(order: Order, config: ResolvedZKOrderConfig) -> Dict[str, Any]:
    """Full EIP-712 typed data for an order."""
    return {
        "types": {"EIP712Domain": EIP712_DOMAIN_TYPE, **ORDER_TYPES},
        "primaryType": "Order",
        "domain": create_eip712_domain(config),
        "message": order.to_message(),
    }


def compute_order_hash(order: Order, config: ResolvedZKOrderConfig) -> str:
    """EIP-712 digest of the order, as the router computes it.

    Returns:
        bytes32 hex string
    """
    signable = encode_typed_data(full_message=build_order_typed_data(order, config))
    digest = keccak(b"\x19" + signable.version + signable.header + signable.body)
    return "0x" + digest.hex()


def split_signature(signature: Union[str, bytes]) -> OrderSignature:
    """Split a 65-byte signature into compact ``(r, vs)`` form.

    Accepts hex with or without ``0x``, or raw bytes (``HexBytes`` included).

    Raises:
        StructuralError: If the signature is malformed or has a high ``s``
    """
    if isinstance(signature, str) and not signature.startswith("0x"):
        signature = "0x" + signature
    elif not isinstance(signature, (str, bytes, bytearray)):
        raise StructuralError(
            f"Signer returned {type(signature).__name__}, expected hex string or bytes"
        )
    raw = as_bytes(signature, "signature")
    if len(raw) != 65:
        raise StructuralError(f"Signature must be 65 bytes, got {len(raw)}")

    r = raw[:32]
    s = int.from_bytes(raw[32:64], "big")
    v = raw[64]
    if v >= 27:
        v -= 27
    if v not in (0, 1):
        raise StructuralError(f"Invalid signature recovery id: {raw[64]}")
    if s > SECP256K1_HALF_N:
        raise StructuralError("Signature s value is not in the lower half order")

    vs = s | (v << 255)
    return OrderSignature(
        r="0x" + r.hex(),
        vs="0x" + vs.to_bytes(32, "big").hex(),
        signature="0x" + raw.hex(),
    )


def sign_order(
    private_key: str,
    order: Order,
    config: ResolvedZKOrderConfig,
) -> OrderSignature:
    """Sign an order with EIP-712 using a private key.

    Use this when you have direct access to a private key.

    Args:
        private_key: Private key (hex string with or without 0x prefix)
        order: Order to sign
        config: Resolved configuration

    Returns:
        OrderSignature with r, vs and the raw signature
    """
    account = Account.from_key(private_key)
    signed_message = account.sign_typed_data(
        domain_data=create_eip712_domain(config),
        message_types=ORDER_TYPES,
        message_data=order.to_message(),
    )
    return split_signature(bytes(signed_message.signature))


class TypedDataSigner(Protocol):
    """Maker wallet as seen by the lifecycle controller.

    Receives the 1inch ``Order`` payload in ``eth_signTypedData_v4`` shape,
    amounts as decimal strings. May return the 65-byte signature as hex or
    as bytes; anything else is reported as a malformed signature.
    """

    async def get_address(self) -> str: ...

    async def sign_typed_data(self, params: Dict[str, Any]) -> Union[str, bytes]: ...


class LocalAccountSigner:
    """TypedDataSigner backed by a local eth_account key."""

    def __init__(self, private_key: str):
        self._account = Account.from_key(private_key)

    async def get_address(self) -> str:
        return self._account.address

    async def sign_typed_data(self, params: Dict[str, Any]) -> str:
        types = {k: v for k, v in params["types"].items() if k != "EIP712Domain"}
        fields = {f["name"]: f["type"] for f in types[params["primaryType"]]}
        message = {
            name: int(value) if fields[name].startswith(("uint", "int")) else value
            for name, value in params["message"].items()
        }
        signed = self._account.sign_typed_data(
            domain_data=params["domain"],
            message_types=types,
            message_data=message,
        )
        return "0x" + signed.signature.hex().removeprefix("0x")


async def sign_order_with_signer(
    signer: TypedDataSigner,
    order: Order,
    config: ResolvedZKOrderConfig,
) -> OrderSignature:
    """Sign an order with EIP-712 using any compatible signer.

    Numeric fields are sent as decimal strings so that JSON-based wallets
    keep full 256-bit precision.

    Args:
        signer: Signer that implements TypedDataSigner protocol
        order: Order to sign
        config: Resolved configuration

    Returns:
        OrderSignature with r, vs and the raw signature

    Raises:
        SignerError: If the signer fails or rejects the request
        StructuralError: If the signer returns a malformed signature
    """
    message = {
        key: str(value) if isinstance(value, int) else value
        for key, value in order.to_message().items()
    }

    try:
        signature = await signer.sign_typed_data(
            {
                "domain": create_eip712_domain(config),
                "types": ORDER_TYPES,
                "primaryType": "Order",
                "message": message,
            }
        )
    except Exception as e:
        raise SignerError(f"Failed to sign ZK order: {e}", cause=e) from e

    return split_signature(signature)


def verify_order_signature(
    order: Order,
    signature: OrderSignature,
    config: ResolvedZKOrderConfig,
    expected_signer: str,
) -> bool:
    """Verify an order signature locally (for EOA signatures).

    Note: This only works for EOA signatures. Contract wallets are verified
    on-chain via EIP-1271.

    Returns:
        True if signature is valid and from expected signer
    """
    try:
        signable_message = encode_typed_data(full_message=build_order_typed_data(order, config))
        recovered = Account.recover_message(
            signable_message, signature=as_bytes(signature.signature, "signature")
        )
        return recovered.lower() == expected_signer.lower()
    except Exception:
        return False


def is_well_formed_signature(signature: OrderSignature) -> bool:
    """Check the hex shape of r, vs and the raw signature."""
    return (
        _BYTES32_PATTERN.match(signature.r) is not None
        and _BYTES32_PATTERN.match(signature.vs) is not None
        and _SIGNATURE_PATTERN.match(signature.signature) is not None
    )
