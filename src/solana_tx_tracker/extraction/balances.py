"""Account balance table - per-transaction pre/post balances for the tracked mint."""

from __future__ import annotations

from typing import Any, Iterable, Iterator, Mapping

from solana_tx_tracker.models.transfers import Account

TokenBalance = Mapping[str, Any]


def _ui_amount(balance: TokenBalance) -> float | None:
    """Pull uiTokenAmount.uiAmount out of a token balance entry, or None."""
    token_amount = balance.get("uiTokenAmount")
    if not isinstance(token_amount, Mapping):
        return None
    value = token_amount.get("uiAmount")
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _account_index(balance: TokenBalance) -> int | None:
    index = balance.get("accountIndex")
    if isinstance(index, bool) or not isinstance(index, int):
        return None
    return index


class AccountBalanceTable:
    """Maps transaction-local account index to an Account for one mint.

    Only pre-balance entries create accounts. Post-balance entries update
    accounts that already exist; accounts that appear only after execution
    stay invisible.
    """

    def __init__(self, accounts: Mapping[int, Account] | None = None) -> None:
        self._accounts: dict[int, Account] = dict(accounts or {})

    @classmethod
    def from_token_balances(
        cls,
        mint: str,
        pre_balances: Iterable[TokenBalance] | None,
        post_balances: Iterable[TokenBalance] | None,
    ) -> AccountBalanceTable:
        accounts: dict[int, Account] = {}

        for balance in pre_balances or ():
            if not isinstance(balance, Mapping) or balance.get("mint") != mint:
                continue
            owner = balance.get("owner")
            index = _account_index(balance)
            amount = _ui_amount(balance)
            if not owner or index is None or amount is None:
                continue
            accounts[index] = Account.from_pre_balance(owner, index, amount)

        if accounts:
            for balance in post_balances or ():
                if not isinstance(balance, Mapping):
                    continue
                index = _account_index(balance)
                if index not in accounts:
                    continue
                amount = _ui_amount(balance)
                if amount is not None:
                    accounts[index] = accounts[index].with_post_balance(amount)

        return cls(accounts)

    def get(self, index: int) -> Account | None:
        return self._accounts.get(index)

    def __contains__(self, index: object) -> bool:
        return index in self._accounts

    def __len__(self) -> int:
        return len(self._accounts)

    def __iter__(self) -> Iterator[Account]:
        return iter(self._accounts.values())
