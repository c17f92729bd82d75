"""Solana token transfer tracker."""

__version__ = "0.1.0"
