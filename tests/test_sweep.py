from __future__ import annotations

from datetime import timedelta

from conftest import NOW, make_project, make_request
from request_hub.models.request import RequestStatus
from request_hub.services.sweep import expire_pass, purge_archived_pass, sweep


def test_rejected_item_fades_then_disappears_on_next_interval():
    rejected = make_request(status=RequestStatus.REJECTED, last_status_update=NOW - timedelta(days=2))

    first, marked, removed = expire_pass([rejected], NOW)
    assert (marked, removed) == (1, 0)
    assert first[0].is_expired is True
    assert first[0].expired_at == NOW

    second, marked, removed = expire_pass(first, NOW + timedelta(minutes=1))
    assert second == []
    assert (marked, removed) == (0, 1)


def test_expire_pass_is_idempotent_at_the_same_instant():
    completed = make_request(status=RequestStatus.COMPLETED, last_status_update=NOW - timedelta(days=3))

    once, _, _ = expire_pass([completed], NOW)
    twice, marked, removed = expire_pass(once, NOW)

    assert twice == once
    assert (marked, removed) == (0, 0)


def test_expiry_window_boundary():
    at_boundary = make_request(status=RequestStatus.COMPLETED, last_status_update=NOW - timedelta(days=1))
    just_past = make_request(
        id="req-2",
        status=RequestStatus.COMPLETED,
        last_status_update=NOW - timedelta(days=1, seconds=1),
    )

    swept, marked, _ = expire_pass([at_boundary, just_past], NOW)

    assert marked == 1
    assert swept[0].is_expired is False
    assert swept[1].is_expired is True


def test_open_items_and_undated_finished_items_never_expire():
    pending = make_request(id="open", last_status_update=NOW - timedelta(days=30))
    undated = make_request(id="undated", status=RequestStatus.REJECTED)

    swept, marked, removed = expire_pass([pending, undated], NOW)

    assert [r.id for r in swept] == ["open", "undated"]
    assert (marked, removed) == (0, 0)


def test_legacy_expired_marker_without_timestamp_is_dropped():
    legacy = make_request(
        status=RequestStatus.COMPLETED,
        last_status_update=NOW - timedelta(days=5),
        is_expired=True,
    )

    swept, _, removed = expire_pass([legacy], NOW)

    assert swept == []
    assert removed == 1


def test_archived_projects_are_purged_after_retention():
    fresh = make_project(id="fresh", archived=True, archived_at=NOW - timedelta(days=6))
    stale = make_project(id="stale", archived=True, archived_at=NOW - timedelta(days=7, minutes=1))
    active = make_project(id="active", archived_at=NOW - timedelta(days=30))

    kept, purged = purge_archived_pass([fresh, stale, active], NOW)

    assert [r.id for r in kept] == ["fresh", "active"]
    assert purged == 1


def test_sweep_runs_both_passes_and_reports():
    collection = [
        make_request(id="done", status=RequestStatus.COMPLETED, last_status_update=NOW - timedelta(days=2)),
        make_project(id="old", archived=True, archived_at=NOW - timedelta(days=8)),
        make_request(id="open"),
    ]

    swept, report = sweep(collection, NOW)

    assert [r.id for r in swept] == ["done", "open"]
    assert report.marked_expired == 1
    assert report.purged_archived == 1
    assert report.changed


def test_sweep_respects_custom_windows():
    done = make_request(status=RequestStatus.COMPLETED, last_status_update=NOW - timedelta(days=2))

    swept, report = sweep([done], NOW, expiry=timedelta(days=3))

    assert swept == [done]
    assert not report.changed
