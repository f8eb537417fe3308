"""Order ID Generation for hidden-parameter orders.

Generates deterministic order IDs that provide:
- Cross-chain replay protection (via chain_id)
- Cross-maker collision prevention (via maker address)
- Binding to the hidden terms (via the full commitment, not the salt's truncation)
"""

from eth_abi import encode
from eth_utils import keccak, is_address, to_checksum_address

from ..zk.types import SNARK_SCALAR_FIELD


def generate_order_id(chain_id: int, maker: str, commitment: int, salt: int) -> str:
    """Generate an order ID using a deterministic hash.

    Args:
        chain_id: Chain the order is signed for
        maker: Maker address
        commitment: Full Poseidon commitment
        salt: Packed order salt

    Returns:
        bytes32 hex string order ID

    Raises:
        ValueError: If the address is invalid or a value is out of range
    """
    if not is_address(maker):
        raise ValueError(f"Invalid maker: {maker}")
    if chain_id <= 0:
        raise ValueError(f"Invalid chain_id: {chain_id}")
    if not 0 <= commitment < SNARK_SCALAR_FIELD:
        raise ValueError("Commitment outside the BN254 scalar field")
    if not 0 <= salt < 2**256:
        raise ValueError("Salt must fit in uint256")

    encoded = encode(
        ["uint256", "address", "uint256", "uint256"],
        [chain_id, to_checksum_address(maker), commitment, salt],
    )
    return "0x" + keccak(encoded).hex()


def verify_order_id(order_id: str, chain_id: int, maker: str, commitment: int, salt: int) -> bool:
    """Verify an order ID matches the given fields.

    Returns:
        True if the order ID matches, False otherwise
    """
    try:
        return generate_order_id(chain_id, maker, commitment, salt).lower() == order_id.lower()
    except ValueError:
        return False
