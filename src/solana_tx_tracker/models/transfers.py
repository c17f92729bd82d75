"""Transfer domain models produced by block extraction."""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Account:
    """A token-balance-bearing account within one transaction.

    `index` is the transaction-local account index, never a global id.
    """

    address: str  # owner address
    index: int
    pre_balance: float
    post_balance: float

    @classmethod
    def from_pre_balance(cls, address: str, index: int, pre_balance: float) -> Account:
        return cls(
            address=address,
            index=index,
            pre_balance=pre_balance,
            post_balance=pre_balance,
        )

    def with_post_balance(self, post_balance: float) -> Account:
        return replace(self, post_balance=post_balance)

    @property
    def delta(self) -> float:
        return self.post_balance - self.pre_balance


@dataclass(frozen=True)
class Program:
    """The on-chain program that issued a transfer instruction."""

    address: str
    index: int


@dataclass(frozen=True)
class TransferEvent:
    """An inbound token transfer detected in a transaction."""

    signature: str
    source: Account
    destination: Account
    program: Program
    amount: float  # destination post - pre, always > 0
    token: str  # tracked mint address


@dataclass(frozen=True)
class Block:
    """A fetched block and the transfers extracted from it, in document order."""

    slot: int
    blockhash: str
    transactions: tuple[TransferEvent, ...] = ()
