"""Subscription lifecycle - concurrent streams with synchronized startup and teardown."""

from solana_tx_tracker.subscriptions.coordinator import (
    OpenedStream,
    Subscription,
    SubscriptionCoordinator,
    SubscriptionHandle,
)

__all__ = ["OpenedStream", "Subscription", "SubscriptionCoordinator", "SubscriptionHandle"]
