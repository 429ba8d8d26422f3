"""
Data models for Seenn API payloads.

Wire payloads are camelCase JSON; models are snake_case dataclasses with
from_dict()/to_dict() converters. to_dict() omits optional fields that are
absent so a parsed response serializes back to the same shape. Fields sent
as explicit null are treated as absent.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any, Callable, TypeVar

from seenn.exceptions import SeennError

T = TypeVar("T")


class JobStatus(str, Enum):
    """Status of a Seenn job. COMPLETED and FAILED are terminal."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


class ChildProgressMode(str, Enum):
    """How a parent job's progress is combined from its children."""

    AVERAGE = "average"
    WEIGHTED = "weighted"
    SEQUENTIAL = "sequential"


def parse_timestamp(ts: Any) -> Optional[datetime]:
    """Parse an ISO 8601 string or epoch seconds into an aware UTC datetime."""
    if ts is None:
        return None
    if isinstance(ts, datetime):
        parsed = ts
    elif isinstance(ts, (int, float)):
        return datetime.fromtimestamp(ts, tz=timezone.utc)
    elif isinstance(ts, str):
        parsed = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return dt.isoformat().replace("+00:00", "Z")


def decode(parser: Callable[[Dict[str, Any]], T], data: Any) -> T:
    """
    Build a model from a decoded response body.

    Raises:
        SeennError: INVALID_RESPONSE when the body does not fit the model
    """
    if not isinstance(data, dict):
        raise SeennError.invalid_response(
            f"Expected a JSON object in Seenn API response, got {type(data).__name__}"
        )
    try:
        return parser(data)
    except (ValueError, KeyError, TypeError, AttributeError, OverflowError) as e:
        raise SeennError.invalid_response(f"Malformed Seenn API response: {e}") from e


def _without_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


@dataclass(frozen=True)
class QueueInfo:
    """Position of a job in the server's queue."""

    position: int
    total: Optional[int] = None
    queue_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueueInfo":
        return cls(
            position=data.get("position", 0),
            total=data.get("total"),
            queue_name=data.get("queueName"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _without_none({
            "position": self.position,
            "total": self.total,
            "queueName": self.queue_name,
        })


@dataclass(frozen=True)
class StageInfo:
    """Current stage of a multi-stage job (1-based)."""

    name: str
    current: int
    total: int
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StageInfo":
        return cls(
            name=data.get("name", ""),
            current=data.get("current", 0),
            total=data.get("total", 0),
            description=data.get("description"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _without_none({
            "name": self.name,
            "current": self.current,
            "total": self.total,
            "description": self.description,
        })


@dataclass(frozen=True)
class JobResult:
    """Result payload of a completed job."""

    type: Optional[str] = None
    url: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobResult":
        return cls(
            type=data.get("type"),
            url=data.get("url"),
            data=data.get("data"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _without_none({"type": self.type, "url": self.url, "data": self.data})


@dataclass(frozen=True)
class JobError:
    """Error payload of a failed job."""

    code: str
    message: str
    details: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobError":
        return cls(
            code=data.get("code", ""),
            message=data.get("message", ""),
            details=data.get("details"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _without_none({
            "code": self.code,
            "message": self.message,
            "details": self.details,
        })


@dataclass(frozen=True)
class ParentInfo:
    """Link from a child job to its parent."""

    parent_job_id: str
    child_index: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParentInfo":
        return cls(
            parent_job_id=data.get("parentJobId", ""),
            child_index=data.get("childIndex", 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"parentJobId": self.parent_job_id, "childIndex": self.child_index}


@dataclass(frozen=True)
class ChildrenStats:
    """Aggregate child counters reported on a parent job."""

    total: int = 0
    completed: int = 0
    failed: int = 0
    running: int = 0
    pending: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChildrenStats":
        return cls(
            total=data.get("total", 0),
            completed=data.get("completed", 0),
            failed=data.get("failed", 0),
            running=data.get("running", 0),
            pending=data.get("pending", 0),
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "completed": self.completed,
            "failed": self.failed,
            "running": self.running,
            "pending": self.pending,
        }


@dataclass(frozen=True)
class ChildProgress:
    """Summary of a parent's children, as exposed by Job.child_progress."""

    completed: int
    failed: int
    running: int
    pending: int
    total: int

    @property
    def settled(self) -> int:
        """Children that reached a terminal status."""
        return self.completed + self.failed


def _optional(model, data: Any):
    if data is None:
        return None
    return model.from_dict(data)


def _serialize(value: Any) -> Any:
    return value.to_dict() if value is not None else None


@dataclass(frozen=True)
class JobSnapshot:
    """
    Immutable server-reported state of one job.

    Snapshots are produced from API responses and never mutated; a Job handle
    swaps its snapshot when a newer response arrives.
    """

    id: str
    app_id: str
    user_id: str
    job_type: str
    title: str
    status: JobStatus
    progress: float = 0
    workflow_id: Optional[str] = None
    message: Optional[str] = None
    queue: Optional[QueueInfo] = None
    stage: Optional[StageInfo] = None
    result: Optional[JobResult] = None
    error: Optional[JobError] = None
    metadata: Optional[Dict[str, Any]] = None
    estimated_completion_at: Optional[datetime] = None
    eta_confidence: Optional[float] = None
    eta_based_on: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    parent: Optional[ParentInfo] = None
    children: Optional[ChildrenStats] = None
    child_progress_mode: Optional[ChildProgressMode] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobSnapshot":
        mode = data.get("childProgressMode")
        return cls(
            id=data.get("id", ""),
            app_id=data.get("appId", ""),
            user_id=data.get("userId", ""),
            job_type=data.get("jobType", ""),
            title=data.get("title", ""),
            status=JobStatus(data.get("status", "pending")),
            progress=data.get("progress", 0),
            workflow_id=data.get("workflowId"),
            message=data.get("message"),
            queue=_optional(QueueInfo, data.get("queue")),
            stage=_optional(StageInfo, data.get("stage")),
            result=_optional(JobResult, data.get("result")),
            error=_optional(JobError, data.get("error")),
            metadata=data.get("metadata"),
            estimated_completion_at=parse_timestamp(data.get("estimatedCompletionAt")),
            eta_confidence=data.get("etaConfidence"),
            eta_based_on=data.get("etaBasedOn"),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
            started_at=parse_timestamp(data.get("startedAt")),
            completed_at=parse_timestamp(data.get("completedAt")),
            parent=_optional(ParentInfo, data.get("parent")),
            children=_optional(ChildrenStats, data.get("children")),
            child_progress_mode=ChildProgressMode(mode) if mode else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "appId": self.app_id,
            "userId": self.user_id,
            "jobType": self.job_type,
            "title": self.title,
            "status": self.status.value,
            "progress": self.progress,
        }
        data.update(_without_none({
            "workflowId": self.workflow_id,
            "message": self.message,
            "queue": _serialize(self.queue),
            "stage": _serialize(self.stage),
            "result": _serialize(self.result),
            "error": _serialize(self.error),
            "metadata": self.metadata,
            "estimatedCompletionAt": format_timestamp(self.estimated_completion_at),
            "etaConfidence": self.eta_confidence,
            "etaBasedOn": self.eta_based_on,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
            "startedAt": format_timestamp(self.started_at),
            "completedAt": format_timestamp(self.completed_at),
            "parent": _serialize(self.parent),
            "children": _serialize(self.children),
            "childProgressMode": self.child_progress_mode.value if self.child_progress_mode else None,
        }))
        return data

    def updated_from(self, response: "JobSnapshot") -> "JobSnapshot":
        """Take every mutable field from a newer response, keeping identity fields."""
        return replace(
            response,
            id=self.id,
            app_id=self.app_id,
            user_id=self.user_id,
            job_type=self.job_type,
            title=self.title,
            workflow_id=self.workflow_id,
            created_at=self.created_at,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_parent(self) -> bool:
        return self.children is not None

    @property
    def is_child(self) -> bool:
        return self.parent is not None

    @property
    def child_progress(self) -> Optional[ChildProgress]:
        if self.children is None:
            return None
        return ChildProgress(
            completed=self.children.completed,
            failed=self.children.failed,
            running=self.children.running,
            pending=self.children.pending,
            total=self.children.total,
        )

    def eta_remaining_ms(self, now: Optional[datetime] = None) -> Optional[int]:
        """Milliseconds until the estimated completion time, floored at 0."""
        if self.estimated_completion_at is None:
            return None
        now = now or datetime.now(timezone.utc)
        remaining = (self.estimated_completion_at - now).total_seconds() * 1000
        return max(0, int(remaining))

    def is_past_eta(self, now: Optional[datetime] = None) -> bool:
        if self.estimated_completion_at is None or self.is_terminal:
            return False
        now = now or datetime.now(timezone.utc)
        return self.estimated_completion_at < now


@dataclass(frozen=True)
class ChildJobSummary:
    """Flattened child row returned by GET /v1/jobs/:id/children."""

    id: str
    child_index: int
    title: str
    status: JobStatus
    progress: float = 0
    message: Optional[str] = None
    result: Optional[JobResult] = None
    error: Optional[JobError] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChildJobSummary":
        return cls(
            id=data.get("id", ""),
            child_index=data.get("childIndex", 0),
            title=data.get("title", ""),
            status=JobStatus(data.get("status", "pending")),
            progress=data.get("progress", 0),
            message=data.get("message"),
            result=_optional(JobResult, data.get("result")),
            error=_optional(JobError, data.get("error")),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
            completed_at=parse_timestamp(data.get("completedAt")),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class EtaStats:
    """Historical duration statistics for one ETA key (workflow id or job type)."""

    eta_key: str
    sample_count: int = 0
    avg_duration_ms: Optional[float] = None
    min_duration_ms: Optional[float] = None
    max_duration_ms: Optional[float] = None
    p50_duration_ms: Optional[float] = None
    p75_duration_ms: Optional[float] = None
    p95_duration_ms: Optional[float] = None
    confidence: Optional[float] = None
    updated_at: Optional[datetime] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EtaStats":
        return cls(
            eta_key=data.get("etaKey", ""),
            sample_count=data.get("sampleCount", data.get("count", 0)),
            avg_duration_ms=data.get("avgDurationMs"),
            min_duration_ms=data.get("minDurationMs"),
            max_duration_ms=data.get("maxDurationMs"),
            p50_duration_ms=data.get("p50DurationMs"),
            p75_duration_ms=data.get("p75DurationMs"),
            p95_duration_ms=data.get("p95DurationMs"),
            confidence=data.get("confidence"),
            updated_at=parse_timestamp(data.get("updatedAt")),
            raw=dict(data),
        )
