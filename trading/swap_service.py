"""
Swap Service contract.

The bot never signs or routes swaps itself; it talks to an implementation
of this interface (a live aggregator integration, or PaperSwapService).
Amounts are in UI units (SOL, tokens), not lamports.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional


class SwapService(ABC):

    @abstractmethod
    async def execute_swap(self, input_mint: str, output_mint: str, amount: float,
                           opts: Dict = None) -> Dict:
        """
        Submit a swap.

        Args:
            opts: slippage_bps and any implementation-specific options

        Returns:
            {'signature': str}

        Raises:
            SwapExecutionError: the swap could not be submitted
        """

    @abstractmethod
    async def confirm_transaction(self, signature: str, timeout: float) -> bool:
        """
        Wait for confirmation.

        Returns:
            True when confirmed, False when the chain reports failure

        Raises:
            ConfirmationTimeoutError: no definitive answer within ``timeout``
        """

    @abstractmethod
    async def get_signature_status(self, signature: str) -> Optional[str]:
        """'processed' | 'confirmed' | 'finalized' | 'failed', or None if unknown."""

    @abstractmethod
    async def get_token_balance(self, mint: str) -> float:
        """Wallet balance of a token, 0.0 if the wallet holds none."""

    @abstractmethod
    async def get_sol_balance(self) -> float:
        """Wallet SOL balance."""

    async def get_sol_price_usd(self) -> Optional[float]:
        """SOL price, if the implementation knows it."""
        return None

    async def close(self):
        pass
