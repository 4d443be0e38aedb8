"""
PaperToken — In-memory ERC20-style ledger for paper model runs.

Async methods with the same shape as the on-chain token calls the commands
and invariants make, so the oracle sees no difference between the paper
ledger and a deployed token.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Tuple

logger = logging.getLogger(__name__)


class PaperRevert(Exception):
    """The paper system rejected an operation (on-chain: a revert)."""
    pass


class PaperToken:
    """
    Virtual token ledger.

    Tracks:
    - Balances (address → amount)
    - Allowances ((owner, spender) → amount)
    """

    def __init__(self, symbol: str = "FIAT", address: str = "0x" + "f1" * 20):
        self.symbol = symbol
        self.address = address
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._total_supply = 0

    # ── Queries ──

    async def balance_of(self, owner: str) -> int:
        await asyncio.sleep(0)
        return self._balances.get(owner, 0)

    async def allowance(self, owner: str, spender: str) -> int:
        await asyncio.sleep(0)
        return self._allowances.get((owner, spender), 0)

    async def total_supply(self) -> int:
        await asyncio.sleep(0)
        return self._total_supply

    # ── Mutations ──

    async def mint(self, to: str, amount: int) -> None:
        _require_amount(amount)
        await asyncio.sleep(0)
        self._balances[to] = self._balances.get(to, 0) + amount
        self._total_supply += amount

    async def approve(self, owner: str, spender: str, amount: int) -> None:
        _require_amount(amount)
        await asyncio.sleep(0)
        self._allowances[(owner, spender)] = amount

    async def transfer(self, sender: str, to: str, amount: int) -> None:
        await asyncio.sleep(0)
        self._move(sender, to, amount)

    async def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        _require_amount(amount)
        await asyncio.sleep(0)
        allowed = self._allowances.get((owner, spender), 0)
        if amount > allowed:
            raise PaperRevert(f"{self.symbol}: insufficient allowance ({allowed} < {amount})")
        self._move(owner, to, amount)
        self._allowances[(owner, spender)] = allowed - amount

    def _move(self, sender: str, to: str, amount: int) -> None:
        _require_amount(amount)
        balance = self._balances.get(sender, 0)
        if amount > balance:
            raise PaperRevert(f"{self.symbol}: transfer amount exceeds balance ({balance} < {amount})")
        self._balances[sender] = balance - amount
        self._balances[to] = self._balances.get(to, 0) + amount
        logger.debug("%s transfer %s → %s: %d", self.symbol, sender[:10], to[:10], amount)

    def __repr__(self) -> str:
        return f"PaperToken({self.symbol}, holders={len(self._balances)}, supply={self._total_supply})"


def _require_amount(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
        raise PaperRevert(f"invalid amount: {amount!r}")
