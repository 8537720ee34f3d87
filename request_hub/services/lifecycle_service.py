from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException

from request_hub.core.config import settings
from request_hub.core.rbac import has_permission
from request_hub.models.auth import CurrentUser
from request_hub.models.request import (
    AcceptedItem,
    ArchivedProject,
    DashboardStats,
    Notification,
    NotificationKind,
    RequestCreate,
    RequestRecord,
    SweepReport,
)
from request_hub.repositories.data_store import CollectionSerializationError, RequestStore, utcnow
from request_hub.services import sweep as sweeper
from request_hub.services import transitions, visibility
from request_hub.services.notification_service import Notifier
from request_hub.services.transitions import TransitionResult

logger = logging.getLogger(__name__)

Transition = Callable[[list[RequestRecord]], TransitionResult]


class RequestLifecycleEngine:
    """Runs every request operation as one read-modify-write of the stored collection.

    Mutations hold the store lock from load to save, so a sweep and a user
    action never interleave. The clock is injectable to drive the expiry and
    archive windows from tests.
    """

    def __init__(
        self,
        store: RequestStore,
        notifier: Notifier,
        clock: Callable[[], datetime] = utcnow,
        expiry_days: int = settings.expiry_days,
        archive_retention_days: int = settings.archive_retention_days,
        recent_activity_limit: int = settings.recent_activity_limit,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.clock = clock
        self.expiry = timedelta(days=expiry_days)
        self.archive_retention = timedelta(days=archive_retention_days)
        self.recent_activity_limit = recent_activity_limit

    def load(self) -> list[RequestRecord]:
        records, _ = self._read()
        return records

    def _read(self) -> tuple[list[RequestRecord], int]:
        try:
            records, revision = self.store.snapshot()
        except CollectionSerializationError as exc:
            logger.error("Stored request collection is unreadable, using an empty one: %s", exc)
            self.notifier.notify(
                Notification(
                    kind=NotificationKind.ERROR,
                    title="Requests unavailable",
                    message="Stored requests could not be read; showing an empty list.",
                )
            )
            return [], self.store.revision

        repaired: list[RequestRecord] = []
        for record in records:
            fixed, issues = transitions.reconcile(record)
            for issue in issues:
                logger.warning("Request %s: %s", record.id, issue)
            repaired.append(fixed)
        return repaired, revision

    def _run(
        self,
        user: CurrentUser,
        action: str,
        transition: Transition,
        item_id: Optional[str] = None,
        guard: Optional[Callable[[RequestRecord], None]] = None,
    ) -> TransitionResult:
        with self.store.lock:
            collection, revision = self._read()
            if guard is not None and item_id is not None:
                record = transitions.find_request(collection, item_id)
                if record is not None:
                    guard(record)
            result = transition(collection)
            if result.changed:
                self.store.save(result.collection, expected_revision=revision)
                logger.info("%s applied to %s by %s", action, item_id or "collection", user.user_id)

        if result.notification is not None:
            self.notifier.notify(result.notification, recipient=user.user_id)
        return result

    def _ensure_can_manage(self, user: CurrentUser) -> Callable[[RequestRecord], None]:
        def guard(record: RequestRecord) -> None:
            if record.creator == user.user_id:
                return
            if (
                has_permission(user.role, "requests:manage:department")
                and record.department == user.department
            ):
                return
            raise HTTPException(
                status_code=403,
                detail="Only the creator or an admin of the department can manage this item",
            )

        return guard

    def create_request(self, user: CurrentUser, payload: RequestCreate) -> TransitionResult:
        now = self.clock()
        return self._run(user, "create", lambda c: transitions.create_request(c, payload, user.user_id, now))

    def accept(self, user: CurrentUser, item_id: str) -> TransitionResult:
        now = self.clock()
        return self._run(user, "accept", lambda c: transitions.accept(c, item_id, user.user_id, now), item_id)

    def mark_completed(self, user: CurrentUser, item_id: str) -> TransitionResult:
        now = self.clock()
        return self._run(
            user, "mark_completed", lambda c: transitions.mark_completed(c, item_id, user.user_id, now), item_id
        )

    def abandon(self, user: CurrentUser, item_id: str) -> TransitionResult:
        now = self.clock()
        return self._run(user, "abandon", lambda c: transitions.abandon(c, item_id, user.user_id, now), item_id)

    def archive(self, user: CurrentUser, item_id: str) -> TransitionResult:
        now = self.clock()
        return self._run(
            user,
            "archive",
            lambda c: transitions.archive(c, item_id, now, self.archive_retention.days),
            item_id,
            guard=self._ensure_can_manage(user),
        )

    def unarchive(self, user: CurrentUser, item_id: str) -> TransitionResult:
        return self._run(
            user,
            "unarchive",
            lambda c: transitions.unarchive(c, item_id),
            item_id,
            guard=self._ensure_can_manage(user),
        )

    def delete(self, user: CurrentUser, item_id: str) -> TransitionResult:
        return self._run(
            user,
            "delete",
            lambda c: transitions.delete(c, item_id),
            item_id,
            guard=self._ensure_can_manage(user),
        )

    def clear_history(self, user: CurrentUser) -> TransitionResult:
        return self._run(user, "clear_history", lambda c: transitions.clear_history(c, user.user_id))

    def sweep(self) -> SweepReport:
        with self.store.lock:
            collection, revision = self._read()
            swept, report = sweeper.sweep(collection, self.clock(), self.expiry, self.archive_retention)
            if report.changed:
                self.store.save(swept, expected_revision=revision)
                logger.info(
                    "Sweep marked %s expired, removed %s expired, purged %s archived",
                    report.marked_expired,
                    report.removed_expired,
                    report.purged_archived,
                )

        if report.purged_archived:
            self.notifier.notify(
                Notification(
                    kind=NotificationKind.INFO,
                    title="Projects removed",
                    message=(
                        "Some archived projects have been automatically deleted after "
                        f"{self.archive_retention.days} days."
                    ),
                )
            )
        return report

    def own_requests(self, user: CurrentUser) -> list[RequestRecord]:
        return visibility.own_requests(self.load(), user)

    def accepted_items(self, user: CurrentUser) -> list[AcceptedItem]:
        return [
            AcceptedItem(request=r, marked_completed=visibility.has_marked_completed(r, user))
            for r in visibility.accepted_items(self.load(), user)
        ]

    def history_items(self, user: CurrentUser) -> list[RequestRecord]:
        return visibility.history_items(self.load(), user)

    def recent_activity(self, user: CurrentUser) -> list[RequestRecord]:
        return visibility.recent_activity(self.load(), user, self.recent_activity_limit)

    def archived_projects(self, user: CurrentUser) -> list[ArchivedProject]:
        now = self.clock()
        return [
            ArchivedProject(
                request=r,
                days_remaining=visibility.days_remaining(r, now, self.archive_retention),
            )
            for r in visibility.archived_projects(self.load(), user)
        ]

    def dashboard_stats(self) -> DashboardStats:
        return visibility.dashboard_stats(self.load())
