"""Block transaction extractor - rebuilds token transfers from raw getBlock data.

A transfer is reported only when three independent sections of a transaction
agree: the token balance lists (who holds the tracked mint and how much moved),
the account key space (where the token program sits), and the instruction
trace (which accounts the program moved tokens between). Any missing section
means "no transfer" rather than an error.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, Mapping, Sequence

from solana_tx_tracker.extraction.balances import AccountBalanceTable
from solana_tx_tracker.models.config import USDC_MINT
from solana_tx_tracker.models.transfers import Program, TransferEvent

log = logging.getLogger(__name__)

RawBlock = Mapping[str, Any]
RawTransaction = Mapping[str, Any]

# source, destination, authority
_TRANSFER_ACCOUNT_COUNT = 3


def _as_list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


def _address_space(message: Mapping[str, Any], meta: Mapping[str, Any]) -> list[str]:
    """Static account keys followed by loaded writable and readonly addresses."""
    addresses = [str(key) for key in _as_list(message.get("accountKeys"))]
    loaded = meta.get("loadedAddresses")
    if isinstance(loaded, Mapping):
        addresses.extend(str(a) for a in _as_list(loaded.get("writable")))
        addresses.extend(str(a) for a in _as_list(loaded.get("readonly")))
    return addresses


def _resolve_program(
    mint: str, message: Mapping[str, Any], meta: Mapping[str, Any],
) -> Program | None:
    """Locate the token program from the first tracked-mint pre-balance with a programId."""
    for balance in _as_list(meta.get("preTokenBalances")):
        if not isinstance(balance, Mapping) or balance.get("mint") != mint:
            continue
        program_id = balance.get("programId")
        if not program_id:
            continue
        addresses = _address_space(message, meta)
        try:
            index = addresses.index(program_id)
        except ValueError:
            log.debug("Program %s not in account keys", program_id)
            return None
        return Program(address=program_id, index=index)
    return None


def _instruction_pairs(
    instructions: Sequence[Any], program: Program,
) -> Iterator[tuple[int, int]]:
    for instruction in instructions:
        # Parsed instructions carry no programIdIndex and are ignored
        if not isinstance(instruction, Mapping):
            continue
        if instruction.get("programIdIndex") != program.index:
            continue
        accounts = _as_list(instruction.get("accounts"))
        if len(accounts) != _TRANSFER_ACCOUNT_COUNT:
            continue
        yield accounts[0], accounts[1]


def _account_pairs(
    program: Program, message: Mapping[str, Any], meta: Mapping[str, Any],
) -> list[tuple[int, int]]:
    """(source, destination) index pairs: top-level instructions first, then inner."""
    pairs = list(_instruction_pairs(_as_list(message.get("instructions")), program))
    for group in _as_list(meta.get("innerInstructions")):
        if isinstance(group, Mapping):
            pairs.extend(_instruction_pairs(_as_list(group.get("instructions")), program))
    return pairs


class TransferExtractor:
    """Turns a raw block into the ordered transfers of one mint.

    Holds no per-block state; one instance serves every fetch task.
    """

    def __init__(self, mint: str = USDC_MINT) -> None:
        self._mint = mint

    @property
    def mint(self) -> str:
        return self._mint

    def extract(self, raw_block: RawBlock) -> list[TransferEvent]:
        """Extract transfers from every transaction, in document order."""
        events: list[TransferEvent] = []
        for position, raw_tx in enumerate(_as_list(raw_block.get("transactions"))):
            try:
                events.extend(self.extract_transaction(raw_tx))
            except Exception as exc:
                log.warning("Skipping unparseable transaction #%d: %s", position, exc)
        return events

    def extract_transaction(self, raw_tx: RawTransaction) -> list[TransferEvent]:
        """Extract transfers from a single transaction-with-meta entry."""
        if not isinstance(raw_tx, Mapping):
            return []
        meta = raw_tx.get("meta")
        transaction = raw_tx.get("transaction")
        if not isinstance(meta, Mapping) or not isinstance(transaction, Mapping):
            return []
        status = meta.get("status")
        if meta.get("err") is not None or (isinstance(status, Mapping) and "Err" in status):
            return []
        message = transaction.get("message")
        if not isinstance(message, Mapping):
            # Not JSON encoded
            return []

        # 1. Balances
        table = AccountBalanceTable.from_token_balances(
            self._mint, meta.get("preTokenBalances"), meta.get("postTokenBalances"),
        )
        if not table:
            return []

        # 2. Program
        program = _resolve_program(self._mint, message, meta)
        if program is None:
            return []

        # 3. Instruction pairs
        pairs = _account_pairs(program, message, meta)
        if not pairs:
            return []

        signatures = _as_list(transaction.get("signatures"))
        if not signatures:
            return []
        signature = str(signatures[0])

        # 4. Events
        events: list[TransferEvent] = []
        for source_index, destination_index in pairs:
            source = table.get(source_index)
            destination = table.get(destination_index)
            if source is None or destination is None:
                continue
            amount = destination.delta
            if amount <= 0:
                continue
            events.append(TransferEvent(
                signature=signature,
                source=source,
                destination=destination,
                program=program,
                amount=amount,
                token=self._mint,
            ))

        if events:
            log.debug("Transaction %s: %d transfer(s)", signature[:16], len(events))
        return events


def extract_transfers(raw_block: RawBlock, mint: str = USDC_MINT) -> list[TransferEvent]:
    """Convenience wrapper around TransferExtractor.extract()."""
    return TransferExtractor(mint).extract(raw_block)
