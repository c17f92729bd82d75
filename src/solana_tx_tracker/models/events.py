"""Slot update models deserialized from the slotsUpdates websocket stream."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SlotUpdateKind(str, Enum):
    """Slot update types emitted by slotsUpdatesSubscribe."""

    FIRST_SHRED_RECEIVED = "firstShredReceived"
    COMPLETED = "completed"  # all shreds received; the only kind we act on
    CREATED_BANK = "createdBank"
    FROZEN = "frozen"
    DEAD = "dead"
    OPTIMISTIC_CONFIRMATION = "optimisticConfirmation"
    ROOT = "root"


@dataclass(frozen=True)
class SlotUpdate:
    """One notification from the slot-update stream."""

    kind: SlotUpdateKind
    slot: int
    timestamp: int | None = None  # unix millis
    parent: int | None = None

    @property
    def is_completed(self) -> bool:
        return self.kind is SlotUpdateKind.COMPLETED
