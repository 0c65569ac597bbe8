"""Types for phishing simulation campaigns and their statistics."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Self
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    TypeAdapter,
    ValidationError,
    field_validator,
)

# Department bucket for users without a department
UNASSIGNED_DEPARTMENT_ID = "unassigned"
UNASSIGNED_DEPARTMENT_NAME = "Unassigned"


class Difficulty(str, Enum):
    """How hard a simulated phishing email is to recognize."""

    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"
    EXPERT = "EXPERT"


class PhishingAction(str, Enum):
    """Known user actions on a simulated phishing email.

    SENT is implicit when the campaign is created. Callers may also record
    actions outside this set; those are kept in the event metadata.
    """

    SENT = "SENT"
    OPENED = "OPENED"
    CLICKED = "CLICKED"
    REPORTED = "REPORTED"
    DELETED = "DELETED"


# =============================================================================
# Event Metadata
# =============================================================================

_RAW_JSON = TypeAdapter(dict[str, Any])


class ActionStamp(BaseModel):
    """Timestamped entry for a non-click, non-report action.

    Any details supplied with the action are kept as extra fields. Callers
    may override the timestamp; values that are not datetimes are kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    timestamp: Annotated[datetime | str, Field(union_mode="left_to_right")] | None = None


class EventMetadata(BaseModel):
    """Typed view of a phishing event's metadata.

    Known entries are typed fields; anything else (ad-hoc keys merged in
    with a click or report, actions outside PhishingAction) is kept in
    ``model_extra``. Stored values that do not fit their typed field are
    set aside rather than rejected: they show up in ``residual`` and are
    written back unchanged by ``to_storage``.
    """

    model_config = ConfigDict(extra="allow")

    difficulty: Difficulty | None = None
    red_flags: list[str] = Field(default_factory=list)
    template: str | None = None
    opened: ActionStamp | None = None
    deleted: ActionStamp | None = None

    _unparsed: dict[str, Any] = PrivateAttr(default_factory=dict)

    @field_validator("opened", "deleted", mode="before")
    @classmethod
    def coerce_flag(cls, value: Any) -> Any:
        """Accept bare truthy flags for action entries."""
        if value is True:
            return {}
        if value is False or value is None:
            return None
        return value

    @classmethod
    def from_storage(cls, data: dict[str, Any] | None) -> Self:
        """Build from the JSON object stored on the event row."""
        values = dict(data or {})
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            rejected = {str(err["loc"][0]) for err in e.errors() if err["loc"]}

        unparsed = {key: values.pop(key) for key in rejected if key in values}
        metadata = cls.model_validate(values)
        metadata._unparsed = unparsed
        return metadata

    def to_storage(self) -> dict[str, Any]:
        """Serialize to the JSON object stored on the event row."""
        stored = self.model_dump(mode="json", exclude_none=True)
        stored.update(_RAW_JSON.dump_python(self._unparsed, mode="json"))
        return stored

    @property
    def residual(self) -> dict[str, Any]:
        """Entries with no typed field, or whose value did not fit one."""
        return {**(self.model_extra or {}), **self._unparsed}

    @property
    def was_opened(self) -> bool:
        """Whether an open has been recorded."""
        return self.opened is not None or bool(self._unparsed.get("opened"))

    def merged(self, values: dict[str, Any] | None) -> "EventMetadata":
        """Return a copy with ``values`` merged in at the top level."""
        if not values:
            return self.model_copy(deep=True)
        return EventMetadata.from_storage({**self.to_storage(), **values})

    def with_action(
        self,
        action_key: str,
        timestamp: datetime,
        details: dict[str, Any] | None,
    ) -> "EventMetadata":
        """Return a copy with a timestamped entry stored under ``action_key``.

        Keys in ``details`` win over the generated timestamp.
        """
        entry = {"timestamp": timestamp, **(details or {})}
        return EventMetadata.from_storage({**self.to_storage(), action_key: entry})


# =============================================================================
# Requests
# =============================================================================


class CampaignRequest(BaseModel):
    """Parameters for launching a phishing simulation campaign."""

    tenant_id: UUID
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    subject: str = Field(min_length=1, max_length=500)
    email_template: str
    difficulty: Difficulty
    red_flags: list[str] = Field(default_factory=list)
    target_user_ids: list[UUID] = Field(default_factory=list)
    target_department_ids: list[UUID] = Field(default_factory=list)
    scheduled_for: datetime | None = None


class RecordEventRequest(BaseModel):
    """A user action to record against a phishing event."""

    user_id: UUID
    campaign_id: str
    action: str
    metadata: dict[str, Any] | None = None

    @field_validator("action", mode="before")
    @classmethod
    def normalize_action(cls, value: Any) -> Any:
        """Store actions as their upper-case names."""
        if isinstance(value, PhishingAction):
            return value.value
        if isinstance(value, str):
            return value.upper()
        return value


# =============================================================================
# Results
# =============================================================================


@dataclass
class CampaignLaunch:
    """Outcome of creating a campaign."""

    campaign_id: str
    target_count: int
    scheduled_for: datetime

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "campaign_id": self.campaign_id,
            "target_count": self.target_count,
            "scheduled_for": self.scheduled_for.isoformat(),
        }


@dataclass
class CampaignStats:
    """Aggregate outcome of one campaign.

    Rates are percentages of ``total_sent``; average times are minutes from
    send and are None when nobody performed the action.
    """

    campaign_id: str
    total_sent: int = 0
    opened: int = 0
    clicked: int = 0
    reported: int = 0
    click_rate: float = 0.0
    report_rate: float = 0.0
    open_rate: float = 0.0
    average_time_to_click: float | None = None
    average_time_to_report: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "campaign_id": self.campaign_id,
            "total_sent": self.total_sent,
            "opened": self.opened,
            "clicked": self.clicked,
            "reported": self.reported,
            "click_rate": self.click_rate,
            "report_rate": self.report_rate,
            "open_rate": self.open_rate,
            "average_time_to_click": self.average_time_to_click,
            "average_time_to_report": self.average_time_to_report,
        }


@dataclass
class PhishingEventSummary:
    """One event as shown in a user's history."""

    event_id: UUID
    campaign_id: str
    subject: str
    sent_at: datetime
    clicked: bool
    clicked_at: datetime | None
    reported: bool
    reported_at: datetime | None
    difficulty: Difficulty | None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "event_id": str(self.event_id),
            "campaign_id": self.campaign_id,
            "subject": self.subject,
            "sent_at": self.sent_at.isoformat(),
            "clicked": self.clicked,
            "clicked_at": self.clicked_at.isoformat() if self.clicked_at else None,
            "reported": self.reported,
            "reported_at": self.reported_at.isoformat() if self.reported_at else None,
            "difficulty": self.difficulty.value if self.difficulty else None,
        }


@dataclass
class UserPhishingHistory:
    """A user's phishing record, newest event first."""

    total_received: int = 0
    clicked: int = 0
    reported: int = 0
    click_rate: float = 0.0
    report_rate: float = 0.0
    events: list[PhishingEventSummary] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_received": self.total_received,
            "clicked": self.clicked,
            "reported": self.reported,
            "click_rate": self.click_rate,
            "report_rate": self.report_rate,
            "events": [e.to_dict() for e in self.events],
        }


@dataclass
class TenantPhishingStats:
    """Tenant-wide phishing outcome over an optional send window."""

    total_simulations: int = 0
    total_campaigns: int = 0
    clicked: int = 0
    reported: int = 0
    click_rate: float = 0.0
    report_rate: float = 0.0
    start_date: datetime | None = None
    end_date: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_simulations": self.total_simulations,
            "total_campaigns": self.total_campaigns,
            "clicked": self.clicked,
            "reported": self.reported,
            "click_rate": self.click_rate,
            "report_rate": self.report_rate,
            "period": {
                "start_date": self.start_date.isoformat() if self.start_date else None,
                "end_date": self.end_date.isoformat() if self.end_date else None,
            },
        }


@dataclass
class UserDisplay:
    """Directory attributes used to label a user in reports."""

    user_id: UUID
    name: str
    email: str
    department_id: UUID | None = None
    department_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": str(self.user_id),
            "name": self.name,
            "email": self.email,
            "department_id": str(self.department_id) if self.department_id else None,
            "department_name": self.department_name,
        }


@dataclass
class UserPhishingPerformance:
    """Per-user phishing totals used for ranking.

    ``score`` is ``reported * 2 - clicked``; higher is better.
    """

    user_id: UUID
    user: UserDisplay | None = None
    total_received: int = 0
    clicked: int = 0
    reported: int = 0
    click_rate: float = 0.0
    report_rate: float = 0.0
    score: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": str(self.user_id),
            "user": self.user.to_dict() if self.user else None,
            "total_received": self.total_received,
            "clicked": self.clicked,
            "reported": self.reported,
            "click_rate": self.click_rate,
            "report_rate": self.report_rate,
            "score": self.score,
        }


@dataclass
class DepartmentPhishingStats:
    """Phishing totals for one department."""

    department_id: str
    department_name: str
    total_received: int = 0
    clicked: int = 0
    reported: int = 0
    click_rate: float = 0.0
    report_rate: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "department_id": self.department_id,
            "department_name": self.department_name,
            "total_received": self.total_received,
            "clicked": self.clicked,
            "reported": self.reported,
            "click_rate": self.click_rate,
            "report_rate": self.report_rate,
        }


@dataclass
class DifficultyPerformance:
    """How often a user clicked emails of one difficulty."""

    total: int = 0
    clicked: int = 0


@dataclass
class TemplateRecommendation:
    """Suggested difficulty for the next simulation sent to a user."""

    difficulty: Difficulty
    reason: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"difficulty": self.difficulty.value, "reason": self.reason}


@dataclass
class TemplateRecommendations:
    """Difficulty recommendation with the performance it was derived from."""

    click_rate: float
    report_rate: float
    total_simulations: int
    recommendations: list[TemplateRecommendation] = field(default_factory=list)
    difficulty_breakdown: dict[Difficulty, DifficultyPerformance] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_performance": {
                "click_rate": self.click_rate,
                "report_rate": self.report_rate,
                "total_simulations": self.total_simulations,
            },
            "recommendations": [r.to_dict() for r in self.recommendations],
            "difficulty_breakdown": {
                difficulty.value: {"total": perf.total, "clicked": perf.clicked}
                for difficulty, perf in self.difficulty_breakdown.items()
            },
        }
