from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_serializer,
    model_validator,
)
from pydantic.alias_generators import to_camel


class RequestType(str, Enum):
    REQUEST = "request"
    PROJECT = "project"


class RequestStatus(str, Enum):
    PENDING = "Pending"
    IN_PROCESS = "In Process"
    COMPLETED = "Completed"
    REJECTED = "Rejected"


FINISHED_STATUSES = frozenset({RequestStatus.COMPLETED, RequestStatus.REJECTED})

_LEGACY_STATUS_NAMES = {"InProcess": RequestStatus.IN_PROCESS.value}


class RequestRecord(BaseModel):
    """One tracked request or project.

    The persisted blob uses camelCase keys; unknown keys are kept as extras so a
    load/save cycle never drops data written by other clients. ``accepted_by``
    is always a set in memory, while legacy data may hold a bare user id.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str
    type: RequestType = RequestType.REQUEST
    creator: str
    department: str = ""
    title: str = ""
    description: str = ""
    status: RequestStatus = RequestStatus.PENDING
    multi_department: bool = False
    accepted_by: set[str] = Field(default_factory=set)
    users_needed: Optional[int] = None
    users_accepted: int = 0
    participants_completed: set[str] = Field(default_factory=set)
    archived: bool = False
    archived_at: Optional[datetime] = None
    is_expired: bool = False
    expired_at: Optional[datetime] = None
    last_status_update: Optional[datetime] = None
    last_status_update_time: Optional[str] = None
    status_changed_by: Optional[str] = None
    date_created: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _LEGACY_STATUS_NAMES.get(value, value)
        return value

    @field_validator("accepted_by", "participants_completed", mode="before")
    @classmethod
    def _coerce_user_set(cls, value: Any) -> Any:
        # Legacy rows hold a bare user id, an empty string, or even `true`.
        if value is None or isinstance(value, bool) or value == "":
            return set()
        if isinstance(value, str):
            return {value}
        return value

    @field_validator("multi_department", "archived", "is_expired", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("users_accepted", mode="before")
    @classmethod
    def _coerce_counter(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("archived_at", "expired_at", "last_status_update", "created_at", mode="before")
    @classmethod
    def _blank_timestamp(cls, value: Any) -> Any:
        return None if value == "" else value

    @field_validator("archived_at", "expired_at", "last_status_update", "created_at", mode="after")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_serializer("accepted_by", "participants_completed")
    def _serialize_user_set(self, value: set[str]) -> list[str]:
        return sorted(value)

    @model_serializer(mode="wrap")
    def _serialize(self, handler: Any) -> dict[str, Any]:
        data = handler(self)
        for key in ("acceptedBy", "accepted_by"):
            if key in data and self.type == RequestType.REQUEST and len(self.accepted_by) <= 1:
                data[key] = next(iter(self.accepted_by), None)
        return data

    @property
    def is_project(self) -> bool:
        return self.type == RequestType.PROJECT

    @property
    def is_finished(self) -> bool:
        return self.status in FINISHED_STATUSES

    def has_acceptor(self, user_id: str) -> bool:
        return user_id in self.accepted_by

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_unset=True)


class RequestCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: RequestType = RequestType.REQUEST
    department: str = Field(min_length=1, max_length=80)
    title: str = Field(min_length=3, max_length=120)
    description: str = Field(default="", max_length=2000)
    multi_department: bool = False
    users_needed: Optional[int] = Field(default=None, ge=1, le=100)

    @model_validator(mode="after")
    def validate_project_size(self) -> "RequestCreate":
        if self.type == RequestType.PROJECT and self.users_needed is None:
            raise ValueError("users_needed is required for projects")
        if self.type == RequestType.REQUEST and self.users_needed is not None:
            raise ValueError("users_needed only applies to projects")
        return self


class NotificationKind(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    kind: NotificationKind
    title: str
    message: str


class NotificationRecord(Notification):
    recipient: Optional[str] = None
    created_at: datetime


class ActionResponse(BaseModel):
    request: Optional[RequestRecord] = None
    notification: Optional[Notification] = None


class ClearHistoryResponse(BaseModel):
    removed: int
    notification: Notification


class SweepReport(BaseModel):
    marked_expired: int = 0
    removed_expired: int = 0
    purged_archived: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.marked_expired or self.removed_expired or self.purged_archived)


class ArchivedProject(BaseModel):
    request: RequestRecord
    days_remaining: int


class AcceptedItem(BaseModel):
    request: RequestRecord
    marked_completed: bool = False


class DashboardStats(BaseModel):
    total: int
    pending: int
    in_process: int
    completed: int
    rejected: int
