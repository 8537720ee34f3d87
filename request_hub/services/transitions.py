"""Pure state transitions over the request collection.

Each function takes the current collection and returns a ``TransitionResult``
holding a new list; records are never mutated in place. An unknown
``item_id`` yields the collection unchanged and no notification, so stale
references from a client are harmless.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from fastapi import HTTPException

from request_hub.models.request import (
    Notification,
    NotificationKind,
    RequestCreate,
    RequestRecord,
    RequestStatus,
    RequestType,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    collection: list[RequestRecord]
    record: Optional[RequestRecord] = None
    notification: Optional[Notification] = None
    changed: bool = False
    removed: int = 0


def find_request(collection: list[RequestRecord], item_id: str) -> Optional[RequestRecord]:
    return next((r for r in collection if r.id == item_id), None)


def _replace(collection: list[RequestRecord], updated: RequestRecord) -> list[RequestRecord]:
    return [updated if r.id == updated.id else r for r in collection]


def _status_change(status: RequestStatus, actor: str, now: datetime) -> dict[str, Any]:
    return {
        "status": status,
        "last_status_update": now,
        "last_status_update_time": now.strftime("%H:%M:%S"),
        "status_changed_by": actor,
        # A new status restarts the display window.
        "is_expired": False,
        "expired_at": None,
    }


def _apply(
    collection: list[RequestRecord],
    record: RequestRecord,
    updates: dict[str, Any],
    notification: Notification,
) -> TransitionResult:
    updated = record.model_copy(update=updates)
    return TransitionResult(
        collection=_replace(collection, updated),
        record=updated,
        notification=notification,
        changed=True,
    )


def _unchanged(
    collection: list[RequestRecord],
    record: Optional[RequestRecord] = None,
    notification: Optional[Notification] = None,
) -> TransitionResult:
    return TransitionResult(collection=list(collection), record=record, notification=notification)


def create_request(
    collection: list[RequestRecord],
    payload: RequestCreate,
    actor: str,
    now: datetime,
) -> TransitionResult:
    fields: dict[str, Any] = {
        "id": f"req-{uuid4().hex[:10]}",
        "type": payload.type,
        "creator": actor,
        "department": payload.department,
        "title": payload.title,
        "description": payload.description,
        "status": RequestStatus.PENDING,
        "multi_department": payload.multi_department,
        "accepted_by": set(),
        "date_created": now.date().isoformat(),
        "created_at": now,
    }
    if payload.type == RequestType.PROJECT:
        fields.update(
            users_needed=payload.users_needed,
            users_accepted=0,
            participants_completed=set(),
            archived=False,
        )
    record = RequestRecord(**fields)
    return TransitionResult(
        collection=[record, *collection],
        record=record,
        notification=Notification(
            kind=NotificationKind.SUCCESS,
            title="Request created",
            message=f"Your request has been submitted to {payload.department}.",
        ),
        changed=True,
    )


def accept(collection: list[RequestRecord], item_id: str, actor: str, now: datetime) -> TransitionResult:
    record = find_request(collection, item_id)
    if record is None:
        return _unchanged(collection)

    if record.is_finished:
        raise HTTPException(status_code=400, detail="Completed or rejected items cannot be accepted")
    if record.archived:
        raise HTTPException(status_code=400, detail="Archived projects cannot be accepted")
    if record.has_acceptor(actor):
        return _unchanged(
            collection,
            record,
            Notification(
                kind=NotificationKind.INFO,
                title="Already accepted",
                message="You are already working on this item.",
            ),
        )

    if record.is_project:
        if record.users_needed is not None and len(record.accepted_by) >= record.users_needed:
            raise HTTPException(status_code=400, detail="This project already has all the participants it needs")
    elif record.accepted_by and not record.multi_department:
        raise HTTPException(status_code=400, detail="This request has already been accepted by another user")

    accepted = record.accepted_by | {actor}
    updates: dict[str, Any] = {"accepted_by": accepted}
    if record.is_project or record.multi_department:
        updates["users_accepted"] = len(accepted)
    if record.status == RequestStatus.PENDING:
        updates.update(_status_change(RequestStatus.IN_PROCESS, actor, now))

    return _apply(
        collection,
        record,
        updates,
        Notification(
            kind=NotificationKind.SUCCESS,
            title="Request accepted",
            message="The item has been added to your accepted items.",
        ),
    )


def mark_completed(collection: list[RequestRecord], item_id: str, actor: str, now: datetime) -> TransitionResult:
    """Complete a request outright, or record one participant's completion on a project.

    A project only moves to Completed once every acceptor has marked it.
    """
    record = find_request(collection, item_id)
    if record is None:
        return _unchanged(collection)

    done = Notification(
        kind=NotificationKind.SUCCESS,
        title="Marked as Completed",
        message="The item has been marked as completed successfully.",
    )

    if not record.is_project:
        return _apply(collection, record, _status_change(RequestStatus.COMPLETED, actor, now), done)

    if not record.has_acceptor(actor):
        raise HTTPException(
            status_code=400,
            detail="Only participants who accepted this project can mark it completed",
        )
    if record.status == RequestStatus.COMPLETED:
        return _unchanged(collection, record, done)

    completed = record.participants_completed | {actor}
    updates: dict[str, Any] = {"participants_completed": completed}
    if len(completed) == len(record.accepted_by):
        updates.update(_status_change(RequestStatus.COMPLETED, actor, now))
        return _apply(collection, record, updates, done)

    waiting = len(record.accepted_by) - len(completed)
    return _apply(
        collection,
        record,
        updates,
        Notification(
            kind=NotificationKind.INFO,
            title="Completion recorded",
            message=f"Waiting for {waiting} more participant(s) to mark the project completed.",
        ),
    )


def abandon(collection: list[RequestRecord], item_id: str, actor: str, now: datetime) -> TransitionResult:
    record = find_request(collection, item_id)
    if record is None:
        return _unchanged(collection)

    if not (record.multi_department or record.is_project):
        return _apply(
            collection,
            record,
            _status_change(RequestStatus.REJECTED, actor, now),
            Notification(
                kind=NotificationKind.SUCCESS,
                title="Request Rejected",
                message="The item has been rejected and marked as such.",
            ),
        )

    remaining = record.accepted_by - {actor}
    decremented = record.users_accepted - 1
    if decremented < 0:
        logger.warning("usersAccepted on %s would drop to %s; clamping to 0", record.id, decremented)
    elif decremented != len(remaining):
        logger.warning(
            "usersAccepted on %s drifted from acceptedBy (%s vs %s); reconciling",
            record.id,
            decremented,
            len(remaining),
        )

    updates: dict[str, Any] = {
        "accepted_by": remaining,
        "users_accepted": len(remaining),
        "participants_completed": record.participants_completed & remaining,
    }
    if not remaining and record.status != RequestStatus.PENDING:
        updates.update(_status_change(RequestStatus.PENDING, actor, now))

    return _apply(
        collection,
        record,
        updates,
        Notification(
            kind=NotificationKind.SUCCESS,
            title="Request rejected",
            message="You have been removed from the participants list.",
        ),
    )


def archive(
    collection: list[RequestRecord],
    item_id: str,
    now: datetime,
    retention_days: int = 7,
) -> TransitionResult:
    record = find_request(collection, item_id)
    if record is None:
        return _unchanged(collection)

    if not record.is_project:
        raise HTTPException(status_code=400, detail="Only projects can be archived")
    if record.status != RequestStatus.PENDING:
        raise HTTPException(status_code=400, detail="Only pending projects can be archived")
    if record.archived:
        return _unchanged(collection, record)

    return _apply(
        collection,
        record,
        {"archived": True, "archived_at": now},
        Notification(
            kind=NotificationKind.SUCCESS,
            title="Project archived",
            message=f"The project will be deleted automatically after {retention_days} days unless restored.",
        ),
    )


def unarchive(collection: list[RequestRecord], item_id: str) -> TransitionResult:
    record = find_request(collection, item_id)
    if record is None:
        return _unchanged(collection)
    if not record.archived:
        return _unchanged(collection, record)

    return _apply(
        collection,
        record,
        {"archived": False, "archived_at": None},
        Notification(
            kind=NotificationKind.SUCCESS,
            title="Project restored",
            message="The project has been restored from the archive.",
        ),
    )


def delete(collection: list[RequestRecord], item_id: str) -> TransitionResult:
    record = find_request(collection, item_id)
    if record is None:
        return _unchanged(collection)

    return TransitionResult(
        collection=[r for r in collection if r.id != item_id],
        record=record,
        notification=Notification(
            kind=NotificationKind.SUCCESS,
            title="Request deleted",
            message="The item has been permanently deleted.",
        ),
        changed=True,
        removed=1,
    )


def clear_history(collection: list[RequestRecord], actor: str) -> TransitionResult:
    # Only the creator's own finished items; acceptor-only items stay.
    kept = [r for r in collection if not (r.creator == actor and r.is_finished)]
    removed = len(collection) - len(kept)
    return TransitionResult(
        collection=kept,
        notification=Notification(
            kind=NotificationKind.SUCCESS,
            title="History cleared",
            message="Your history has been cleared successfully.",
        ),
        changed=removed > 0,
        removed=removed,
    )


def reconcile(record: RequestRecord) -> tuple[RequestRecord, list[str]]:
    """Repair counter and subset drift in a record read from storage."""
    issues: list[str] = []
    updates: dict[str, Any] = {}

    if record.users_accepted < 0:
        issues.append(f"negative usersAccepted ({record.users_accepted})")
        updates["users_accepted"] = len(record.accepted_by) if record.is_project else 0
    elif record.is_project and record.users_accepted != len(record.accepted_by):
        issues.append(f"usersAccepted {record.users_accepted} != |acceptedBy| {len(record.accepted_by)}")
        updates["users_accepted"] = len(record.accepted_by)

    stray = record.participants_completed - record.accepted_by
    if stray:
        issues.append(f"participantsCompleted not in acceptedBy: {sorted(stray)}")
        updates["participants_completed"] = record.participants_completed & record.accepted_by

    if record.status == RequestStatus.IN_PROCESS and not record.accepted_by:
        issues.append("In Process without any acceptor")

    if not updates:
        return record, issues
    return record.model_copy(update=updates), issues
