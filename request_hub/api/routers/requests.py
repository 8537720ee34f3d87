from fastapi import APIRouter, Depends

from request_hub.api.deps import get_current_user, require_roles
from request_hub.core.rbac import Role
from request_hub.models.auth import CurrentUser
from request_hub.models.request import (
    AcceptedItem,
    ActionResponse,
    ArchivedProject,
    ClearHistoryResponse,
    DashboardStats,
    RequestCreate,
    RequestRecord,
    SweepReport,
)
from request_hub.services.container import lifecycle_engine
from request_hub.services.transitions import TransitionResult


router = APIRouter(prefix="/requests", tags=["Requests"])


def _action_response(result: TransitionResult) -> ActionResponse:
    return ActionResponse(request=result.record, notification=result.notification)


@router.post("", response_model=ActionResponse)
def create_request(
    payload: RequestCreate,
    current_user: CurrentUser = Depends(require_roles([Role.ADMIN, Role.MEMBER])),
) -> ActionResponse:
    return _action_response(lifecycle_engine.create_request(current_user, payload))


@router.get("/mine", response_model=list[RequestRecord])
def list_own_requests(current_user: CurrentUser = Depends(get_current_user)) -> list[RequestRecord]:
    return lifecycle_engine.own_requests(current_user)


@router.get("/accepted", response_model=list[AcceptedItem])
def list_accepted_items(current_user: CurrentUser = Depends(get_current_user)) -> list[AcceptedItem]:
    return lifecycle_engine.accepted_items(current_user)


@router.get("/history", response_model=list[RequestRecord])
def list_history(current_user: CurrentUser = Depends(get_current_user)) -> list[RequestRecord]:
    return lifecycle_engine.history_items(current_user)


@router.delete("/history", response_model=ClearHistoryResponse)
def clear_history(current_user: CurrentUser = Depends(get_current_user)) -> ClearHistoryResponse:
    result = lifecycle_engine.clear_history(current_user)
    return ClearHistoryResponse(removed=result.removed, notification=result.notification)


@router.get("/archived", response_model=list[ArchivedProject])
def list_archived_projects(current_user: CurrentUser = Depends(get_current_user)) -> list[ArchivedProject]:
    return lifecycle_engine.archived_projects(current_user)


@router.get("/recent", response_model=list[RequestRecord])
def list_recent_activity(current_user: CurrentUser = Depends(get_current_user)) -> list[RequestRecord]:
    return lifecycle_engine.recent_activity(current_user)


@router.get("/stats", response_model=DashboardStats, dependencies=[Depends(get_current_user)])
def dashboard_stats() -> DashboardStats:
    return lifecycle_engine.dashboard_stats()


@router.post("/sweep", response_model=SweepReport, dependencies=[Depends(require_roles([Role.ADMIN]))])
def run_sweep() -> SweepReport:
    return lifecycle_engine.sweep()


@router.post("/{item_id}/accept", response_model=ActionResponse)
def accept_request(item_id: str, current_user: CurrentUser = Depends(get_current_user)) -> ActionResponse:
    return _action_response(lifecycle_engine.accept(current_user, item_id))


@router.post("/{item_id}/complete", response_model=ActionResponse)
def mark_completed(item_id: str, current_user: CurrentUser = Depends(get_current_user)) -> ActionResponse:
    return _action_response(lifecycle_engine.mark_completed(current_user, item_id))


@router.post("/{item_id}/abandon", response_model=ActionResponse)
def abandon_request(item_id: str, current_user: CurrentUser = Depends(get_current_user)) -> ActionResponse:
    return _action_response(lifecycle_engine.abandon(current_user, item_id))


@router.post("/{item_id}/archive", response_model=ActionResponse)
def archive_project(item_id: str, current_user: CurrentUser = Depends(get_current_user)) -> ActionResponse:
    return _action_response(lifecycle_engine.archive(current_user, item_id))


@router.post("/{item_id}/unarchive", response_model=ActionResponse)
def unarchive_project(item_id: str, current_user: CurrentUser = Depends(get_current_user)) -> ActionResponse:
    return _action_response(lifecycle_engine.unarchive(current_user, item_id))


@router.delete("/{item_id}", response_model=ActionResponse)
def delete_request(item_id: str, current_user: CurrentUser = Depends(get_current_user)) -> ActionResponse:
    result = lifecycle_engine.delete(current_user, item_id)
    return ActionResponse(notification=result.notification)
