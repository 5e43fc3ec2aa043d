"""
Subscriber Mirror Sync Module

Mirrors Airtable subscribers into the Supabase replica.
"""

from .sync_base import SyncStats, ReconciliationPlan, compute_plan
from .sync_subscribers import SubscriberMirror, sync_subscribers

__all__ = [
    "SyncStats",
    "ReconciliationPlan",
    "compute_plan",
    "SubscriberMirror",
    "sync_subscribers",
]
