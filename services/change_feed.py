"""
Change feed reducer.

Keeps client-side caches of collections in step with row-level change
events. One generic reducer handles every entity type; the cache is a
mapping ``entity -> {id -> record}`` and is never mutated in place, so a
caller can swap the whole cache atomically.

``from_mongo_change`` turns a MongoDB change-stream document into a
ChangeEvent. Every account-core write touches a single document, so each
one arrives as exactly one event.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from shared.logging import get_logger

log = get_logger(__name__)

Record = dict[str, Any]
Cache = Mapping[str, Mapping[str, Record]]


class ChangeOp(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"


@dataclass(frozen=True)
class ChangeEvent:
    entity: str
    op: ChangeOp
    id: str
    record: Record = field(default_factory=dict)


def apply_change_event(cache: Cache, event: ChangeEvent) -> dict[str, dict[str, Record]]:
    """Return a new cache with *event* applied.

    - insert: adds the record; a duplicate insert leaves the cache unchanged
    - update: merges the changed fields onto the cached record, keeping
      fields the event does not mention; an unknown id is added
    - replace: swaps the whole record
    - delete: drops the record if present
    """
    result = {entity: dict(rows) for entity, rows in cache.items()}
    rows = result.setdefault(event.entity, {})

    if event.op is ChangeOp.INSERT:
        if event.id not in rows:
            rows[event.id] = {**event.record, "id": event.id}
    elif event.op is ChangeOp.UPDATE:
        rows[event.id] = {**rows.get(event.id, {}), **event.record, "id": event.id}
    elif event.op is ChangeOp.REPLACE:
        rows[event.id] = {**event.record, "id": event.id}
    elif event.op is ChangeOp.DELETE:
        rows.pop(event.id, None)

    return result


def from_mongo_change(change: Mapping[str, Any]) -> Optional[ChangeEvent]:
    """Convert a change-stream document; None for ops that carry no row."""
    try:
        op = ChangeOp(change.get("operationType"))
    except ValueError:
        log.debug("change_event_ignored", operation=change.get("operationType"))
        return None

    entity = (change.get("ns") or {}).get("coll", "")
    doc_id = str((change.get("documentKey") or {}).get("_id", ""))
    if not entity or not doc_id:
        log.warning("change_event_malformed", operation=op.value)
        return None

    if op is ChangeOp.DELETE:
        record: Record = {}
    elif op is ChangeOp.UPDATE and change.get("fullDocument") is None:
        description = change.get("updateDescription") or {}
        record = dict(description.get("updatedFields") or {})
        for removed in description.get("removedFields") or []:
            record[removed] = None
    else:
        record = dict(change.get("fullDocument") or {})

    record.pop("_id", None)
    return ChangeEvent(entity=entity, op=op, id=doc_id, record=record)
