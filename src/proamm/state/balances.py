"""
Fungible token ledger with deterministic ordering.

Implements TokenLedger[Address, TokenId] -> Amount plus a per-token total
supply. Pools hold their reserves here under the pool address, and each pool's
rToken is the token whose id is the pool address itself.
"""

from __future__ import annotations

import copy
from typing import Dict, Tuple

from ..errors import ErrorKind, PreconditionError


# Type aliases
Address = str  # 0x-prefixed hex string
TokenId = str  # token contract address
Amount = int  # Non-negative integer (arbitrary precision)

ZERO_ADDRESS = "0x" + "00" * 20


class TokenLedger:
    """
    Balance table mapping (holder, token) -> amount, with total supply.

    Note: balances live in a plain dict. Do not rely on dict iteration order;
    `get_all_balances` returns entries sorted by key.
    """

    def __init__(self) -> None:
        self._balances: Dict[Tuple[Address, TokenId], Amount] = {}
        self._supply: Dict[TokenId, Amount] = {}

    def balance_of(self, holder: Address, token: TokenId) -> Amount:
        """Balance of `holder` in `token`. Returns 0 if not found."""
        return self._balances.get((holder, token), 0)

    def total_supply(self, token: TokenId) -> Amount:
        return self._supply.get(token, 0)

    def _set(self, holder: Address, token: TokenId, amount: Amount) -> None:
        if amount == 0:
            # Remove zero balances to keep table sparse
            self._balances.pop((holder, token), None)
        else:
            self._balances[(holder, token)] = amount

    def _debit(self, holder: Address, token: TokenId, amount: Amount) -> None:
        current = self.balance_of(holder, token)
        if current < amount:
            raise PreconditionError(
                ErrorKind.INSUFFICIENT_BALANCE,
                f"{holder} holds {current} of {token}, needs {amount}",
            )
        self._set(holder, token, current - amount)

    def transfer(self, token: TokenId, sender: Address, recipient: Address, amount: Amount) -> None:
        """
        Move `amount` of `token` from `sender` to `recipient`.

        Raises:
            ValueError: If amount is negative
            PreconditionError: If sender's balance is insufficient
        """
        if amount < 0:
            raise ValueError(f"Transfer amount must be non-negative: {amount}")
        if amount == 0:
            return
        self._debit(sender, token, amount)
        self._set(recipient, token, self.balance_of(recipient, token) + amount)

    def mint(self, token: TokenId, recipient: Address, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"Mint amount must be non-negative: {amount}")
        if amount == 0:
            return
        self._set(recipient, token, self.balance_of(recipient, token) + amount)
        self._supply[token] = self.total_supply(token) + amount

    def burn(self, token: TokenId, holder: Address, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"Burn amount must be non-negative: {amount}")
        if amount == 0:
            return
        self._debit(holder, token, amount)
        self._supply[token] = self.total_supply(token) - amount

    def get_all_balances(self) -> Dict[Tuple[Address, TokenId], Amount]:
        """All non-zero balances, keyed (holder, token), in sorted order."""
        return {key: self._balances[key] for key in sorted(self._balances)}

    def get_balances_for_token(self, token: TokenId) -> Dict[Address, Amount]:
        result = {}
        for (holder, t), amount in sorted(self._balances.items()):
            if t == token:
                result[holder] = amount
        return result

    def verify_supply(self) -> bool:
        """Check that every token's balances sum to its recorded total supply."""
        sums: Dict[TokenId, Amount] = {}
        for (_, token), amount in self._balances.items():
            sums[token] = sums.get(token, 0) + amount
        for token, supply in self._supply.items():
            if sums.get(token, 0) != supply:
                return False
        return True

    def snapshot(self) -> tuple:
        return copy.deepcopy((self._balances, self._supply))

    def restore(self, snapshot: tuple) -> None:
        self._balances, self._supply = copy.deepcopy(snapshot)

    def __repr__(self) -> str:
        return f"TokenLedger({len(self._balances)} balances, {len(self._supply)} minted tokens)"
