from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

from request_hub.models.auth import CurrentUser
from request_hub.models.request import DashboardStats, RequestRecord, RequestStatus

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def own_requests(collection: list[RequestRecord], user: CurrentUser) -> list[RequestRecord]:
    return [
        r
        for r in collection
        if r.creator == user.user_id or (r.is_project and r.has_acceptor(user.user_id))
    ]


def archived_projects(collection: list[RequestRecord], user: CurrentUser) -> list[RequestRecord]:
    return [
        r
        for r in collection
        if r.is_project
        and r.archived
        and ((user.is_admin and r.department == user.department) or r.creator == user.user_id)
    ]


def accepted_items(collection: list[RequestRecord], user: CurrentUser) -> list[RequestRecord]:
    return [
        r
        for r in collection
        if r.status == RequestStatus.IN_PROCESS and r.has_acceptor(user.user_id)
    ]


def history_items(collection: list[RequestRecord], user: CurrentUser) -> list[RequestRecord]:
    return [
        r
        for r in collection
        if r.is_finished and (r.creator == user.user_id or r.has_acceptor(user.user_id))
    ]


def recent_activity(collection: list[RequestRecord], user: CurrentUser, limit: int = 3) -> list[RequestRecord]:
    visible = [r for r in own_requests(collection, user) if not r.archived]
    # sorted() is stable, so undated legacy rows keep their stored order.
    visible = sorted(visible, key=lambda r: r.created_at or _OLDEST, reverse=True)
    return visible[:limit]


def dashboard_stats(collection: list[RequestRecord]) -> DashboardStats:
    def count(status: RequestStatus) -> int:
        return sum(1 for r in collection if r.status == status)

    return DashboardStats(
        total=len(collection),
        pending=count(RequestStatus.PENDING),
        in_process=count(RequestStatus.IN_PROCESS),
        completed=count(RequestStatus.COMPLETED),
        rejected=count(RequestStatus.REJECTED),
    )


def days_remaining(record: RequestRecord, now: datetime, retention: timedelta = timedelta(days=7)) -> int:
    """Whole days left before an archived project is purged; 0 means today."""
    if record.archived_at is None:
        return retention.days
    left = (record.archived_at + retention - now).total_seconds() / 86400
    return max(0, math.ceil(left))


def has_marked_completed(record: RequestRecord, user: CurrentUser) -> bool:
    return record.is_project and user.user_id in record.participants_completed
