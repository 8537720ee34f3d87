from __future__ import annotations

from datetime import datetime, timedelta

from request_hub.models.request import RequestRecord, RequestStatus, SweepReport


def expire_pass(
    collection: list[RequestRecord],
    now: datetime,
    expiry: timedelta = timedelta(days=1),
) -> tuple[list[RequestRecord], int, int]:
    """Fade finished items past the expiry window, then drop them on a later pass.

    Returns the new collection with the number of records marked and removed.
    A record marked at ``now`` is never removed by a pass at the same instant.
    """
    kept: list[RequestRecord] = []
    marked = removed = 0

    for record in collection:
        if record.is_finished and record.last_status_update is not None:
            if record.is_expired:
                if record.expired_at is None or now > record.expired_at:
                    removed += 1
                    continue
            elif now > record.last_status_update + expiry:
                record = record.model_copy(update={"is_expired": True, "expired_at": now})
                marked += 1
        kept.append(record)

    return kept, marked, removed


def purge_archived_pass(
    collection: list[RequestRecord],
    now: datetime,
    retention: timedelta = timedelta(days=7),
) -> tuple[list[RequestRecord], int]:
    kept = [
        r
        for r in collection
        if not (
            r.archived
            and r.status == RequestStatus.PENDING
            and r.archived_at is not None
            and now > r.archived_at + retention
        )
    ]
    return kept, len(collection) - len(kept)


def sweep(
    collection: list[RequestRecord],
    now: datetime,
    expiry: timedelta = timedelta(days=1),
    retention: timedelta = timedelta(days=7),
) -> tuple[list[RequestRecord], SweepReport]:
    swept, marked, removed = expire_pass(collection, now, expiry)
    swept, purged = purge_archived_pass(swept, now, retention)
    return swept, SweepReport(marked_expired=marked, removed_expired=removed, purged_archived=purged)
