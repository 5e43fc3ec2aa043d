"""
Base types for sync operations

- Sync statistics
- Reconciliation plan (set difference on external record id)
"""

from typing import Dict, Any, List, Iterable, Set
from dataclasses import dataclass, field

from helpdesk.models.schemas import Subscriber
from helpdesk.services.errors import ReconciliationPartialFailure


@dataclass
class SyncStats:
    """Track sync operation statistics"""
    total_source: int = 0
    inserted: int = 0
    updated: int = 0
    deleted: int = 0
    failed: int = 0
    errors: List[ReconciliationPartialFailure] = field(default_factory=list)

    def add_error(self, external_id: str, error: str):
        self.failed += 1
        self.errors.append(ReconciliationPartialFailure(external_id=external_id, error=str(error)))

    def as_dict(self) -> Dict[str, int]:
        return {
            "total_source": self.total_source,
            "inserted": self.inserted,
            "updated": self.updated,
            "deleted": self.deleted,
            "failed": self.failed,
        }


@dataclass
class ReconciliationPlan:
    """Insert / update / delete sets for one mirror run"""
    to_insert: List[Subscriber] = field(default_factory=list)
    to_update: List[Subscriber] = field(default_factory=list)
    to_delete: List[str] = field(default_factory=list)

    def summary(self) -> Dict[str, Any]:
        return {
            "insert": len(self.to_insert),
            "update": len(self.to_update),
            "delete": len(self.to_delete),
        }


def external_id_of(subscriber: Subscriber) -> str:
    return subscriber.external_record_id or subscriber.id


def compute_plan(source: Iterable[Subscriber], replica_ids: Iterable[str]) -> ReconciliationPlan:
    """
    Diff the source against the replica by external record id.

    Present in both -> update (unconditional overwrite, no dirty check).
    Replica rows without an external id are never deleted.
    """
    existing: Set[str] = {i for i in replica_ids if i}
    plan = ReconciliationPlan()
    seen: Set[str] = set()

    for subscriber in source:
        external_id = external_id_of(subscriber)
        if external_id in seen:
            continue
        seen.add(external_id)

        if external_id in existing:
            plan.to_update.append(subscriber)
        else:
            plan.to_insert.append(subscriber)

    plan.to_delete = sorted(existing - seen)
    return plan
