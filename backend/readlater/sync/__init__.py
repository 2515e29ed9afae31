"""Offline cache and server reconciliation."""

from .local_cache import LocalCache
from .reconciler import Reconciler, SyncFailure, SyncPlan, SyncReport, parse_local, plan_sync

__all__ = [
    "LocalCache",
    "Reconciler",
    "SyncFailure",
    "SyncPlan",
    "SyncReport",
    "parse_local",
    "plan_sync",
]
