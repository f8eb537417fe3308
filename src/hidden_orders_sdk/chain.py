"""Read-only chain access for taker-side checks.

The taker evaluator only needs two capabilities: token balances and gas
estimates. ``ChainReader`` names them; ``Web3ChainReader`` implements them
over a JSON-RPC endpoint.
"""

import logging
from typing import Any, Dict, Optional, Protocol

from eth_utils import is_address, to_checksum_address

from .errors import ChainQueryError
from .utils import ZERO_ADDRESS

logger = logging.getLogger(__name__)

ERC20_BALANCE_OF_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    }
]


class ChainReader(Protocol):
    """Protocol for read-only chain queries."""

    async def balance_of(self, token: str, owner: str) -> int:
        """Balance of ``owner`` in ``token`` (zero address = native coin)."""
        ...

    async def estimate_gas(self, call: Dict[str, Any]) -> int:
        """Gas estimate for a transaction dict (``from``, ``to``, ``data``)."""
        ...


class Web3ChainReader:
    """ChainReader backed by web3's async HTTP provider.

    Example:
        >>> reader = Web3ChainReader("https://eth.llamarpc.com")
        >>> await reader.balance_of(USDC, taker)
    """

    def __init__(self, rpc_url: Optional[str] = None, w3: Optional[Any] = None):
        if w3 is None:
            if not rpc_url:
                raise ValueError("rpc_url or w3 is required")
            from web3 import AsyncHTTPProvider, AsyncWeb3

            w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self.w3 = w3

    async def balance_of(self, token: str, owner: str) -> int:
        if not is_address(token) or not is_address(owner):
            raise ValueError(f"Invalid address: token={token} owner={owner}")

        owner = to_checksum_address(owner)
        try:
            if int(token, 16) == int(ZERO_ADDRESS, 16):
                return await self.w3.eth.get_balance(owner)
            contract = self.w3.eth.contract(
                address=to_checksum_address(token), abi=ERC20_BALANCE_OF_ABI
            )
            return await contract.functions.balanceOf(owner).call()
        except Exception as e:
            logger.debug("balanceOf(%s, %s) failed: %s", token, owner, e)
            raise ChainQueryError(f"Balance query failed: {e}", cause=e) from e

    async def estimate_gas(self, call: Dict[str, Any]) -> int:
        try:
            return await self.w3.eth.estimate_gas(call)
        except Exception as e:
            logger.debug("estimateGas failed: %s", e)
            raise ChainQueryError(f"Gas estimation failed: {e}", cause=e) from e
