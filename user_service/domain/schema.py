"""
Domain schemas for user-service.
Defines the User resource, list query descriptor, write results and events.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field, ConfigDict, field_validator


# Sortable fields accepted by the list endpoint
SORTABLE_FIELDS = frozenset({
    "first_name",
    "last_name",
    "nickname",
    "password",
    "email",
    "country",
    "created_at",
    "updated_at",
})

# Fields that may be used as exact-match filters
FILTERABLE_FIELDS = ("first_name", "last_name", "nickname", "email", "country")

DEFAULT_PAGE_SIZE = 20
DEFAULT_PAGE = 0
DEFAULT_SORT_FIELD = "last_name"
DEFAULT_SORT_DIRECTION = "asc"


def utc_now_millis() -> datetime:
    """Current UTC time truncated to the store's millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


class User(BaseModel):
    """User resource as stored and returned by the API."""
    model_config = ConfigDict(extra='ignore')

    id: str = Field(..., description="Server generated UUID")
    first_name: str = Field(..., description="First name")
    last_name: str = Field(..., description="Last name")
    nickname: str = Field(..., description="Nickname")
    password: str = Field(..., description="Opaque password string")
    email: str = Field(..., description="Email address")
    country: str = Field(..., description="Country")
    created_at: datetime = Field(..., description="Creation timestamp (UTC, ms precision)")
    updated_at: datetime = Field(..., description="Last update timestamp (UTC, ms precision)")


class UserInput(BaseModel):
    """
    Inbound representation of a user for create and update.

    Absent and null fields become empty strings so that required-field checks
    are reported by the validator with its fixed messages.
    Server owned fields (id, created_at, updated_at) are ignored if sent.
    """
    model_config = ConfigDict(extra='ignore')

    first_name: str = ""
    last_name: str = ""
    nickname: str = ""
    password: str = ""
    email: str = ""
    country: str = ""

    @field_validator(
        "first_name", "last_name", "nickname", "password", "email", "country",
        mode="before"
    )
    @classmethod
    def null_as_empty(cls, v):
        return "" if v is None else v


class Sort(BaseModel):
    """Sort specification of a list query."""
    model_config = ConfigDict(extra='forbid')

    field: str = Field(default=DEFAULT_SORT_FIELD, description="Field to sort by")
    direction: str = Field(default=DEFAULT_SORT_DIRECTION, description="asc or desc")


class FilterFields(BaseModel):
    """Exact-match filters. Empty string means no constraint."""
    model_config = ConfigDict(extra='forbid')

    first_name: str = ""
    last_name: str = ""
    nickname: str = ""
    email: str = ""
    country: str = ""


class ListQuery(BaseModel):
    """Structured list query produced from the raw query parameters."""
    model_config = ConfigDict(extra='forbid')

    page_size: int = Field(default=DEFAULT_PAGE_SIZE, description="Page size, 0 means store default")
    page: int = Field(default=DEFAULT_PAGE, description="Zero based page index")
    sort: Sort = Field(default_factory=Sort)
    filters: FilterFields = Field(default_factory=FilterFields)


class WriteStatus(str, Enum):
    """Outcome of a store write."""
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    # The write was applied but the returned document could not be decoded
    DECODE_FAILED = "decode_failed"


class WriteResult(BaseModel):
    """Tagged result of a store update or delete."""
    model_config = ConfigDict(extra='forbid')

    status: WriteStatus
    user: Optional[User] = None
    error: Optional[str] = None


class MutationOutcome(BaseModel):
    """Result of a create, update or delete as seen by the HTTP layer."""
    model_config = ConfigDict(extra='forbid')

    status: WriteStatus
    user: Optional[User] = None
    emit_event: bool = Field(default=False, description="Whether an event had to be emitted")
    event_published: bool = Field(default=False, description="Whether the publish succeeded")


class UserAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class UserDeletedData(BaseModel):
    """Payload of a deleted event: only the identifier."""
    model_config = ConfigDict(extra='forbid')

    id: str


class UserEvent(BaseModel):
    """
    Event emitted on user mutation.

    user_data is the full post-write User for created/updated events
    and UserDeletedData for deleted events.
    """
    model_config = ConfigDict(extra='forbid')

    action: UserAction
    user_data: Union[User, UserDeletedData]

    @classmethod
    def created(cls, user: User) -> "UserEvent":
        return cls(action=UserAction.CREATED, user_data=user)

    @classmethod
    def updated(cls, user: User) -> "UserEvent":
        return cls(action=UserAction.UPDATED, user_data=user)

    @classmethod
    def deleted(cls, user_id: str) -> "UserEvent":
        return cls(action=UserAction.DELETED, user_data=UserDeletedData(id=user_id))

    @property
    def user_id(self) -> str:
        return self.user_data.id


class HealthStatus(BaseModel):
    """Health check response."""
    model_config = ConfigDict(extra='forbid')

    status: str = Field(..., description="overall status: healthy, unhealthy")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    checks: dict[str, str] = Field(default_factory=dict, description="Individual check results")
