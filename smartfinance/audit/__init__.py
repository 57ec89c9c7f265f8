"""Sync event logging package."""

from smartfinance.audit.logger import SyncEventLogger

__all__ = ["SyncEventLogger"]
