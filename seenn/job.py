"""
Job handle with a fluent async API for lifecycle updates.

A Job wraps one immutable JobSnapshot and the HttpClient used to update it.
Every mutating call is a full round trip: on success the handle swaps in the
snapshot built from the response, keeping its identity fields. On failure
the SeennError propagates unchanged and the previous snapshot stays in place.

Mutations on one handle are serialized by a per-handle asyncio.Lock. Two
handles for the same job id are independent and only converge via refresh().

Usage:
    job = await client.jobs.start(job_type="video-generation", user_id="u1", title="Render")
    await job.set_progress(50, message="Encoding")
    await job.complete(result=JobResult(url="https://cdn.example.com/out.mp4"))
"""

import asyncio
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, Union
from urllib.parse import quote

from seenn.http import HttpClient
from seenn.models import (
    JobSnapshot,
    JobStatus,
    JobResult,
    JobError,
    QueueInfo,
    StageInfo,
    ParentInfo,
    ChildrenStats,
    ChildProgress,
    ChildProgressMode,
    decode,
    format_timestamp,
)


def job_path(job_id: str, action: Optional[str] = None) -> str:
    path = f"/v1/jobs/{quote(job_id, safe='')}"
    return f"{path}/{action}" if action else path


def _payload(value: Any) -> Any:
    """Convert models and datetimes into JSON-ready values."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


def request_body(**fields: Any) -> Dict[str, Any]:
    return {key: _payload(value) for key, value in fields.items() if value is not None}


class Job:
    """Handle on one server-side job."""

    def __init__(self, snapshot: JobSnapshot, http: HttpClient):
        self._snapshot = snapshot
        self._http = http
        self._lock = asyncio.Lock()

    @classmethod
    def from_response(cls, data: Dict[str, Any], http: HttpClient) -> "Job":
        return cls(decode(JobSnapshot.from_dict, data), http)

    def __repr__(self) -> str:
        return (
            f"Job(id={self.id!r}, status={self.status.value!r}, "
            f"progress={self.progress!r})"
        )

    # ------------------------------------------------------------------
    # Lifecycle updates
    # ------------------------------------------------------------------

    async def set_progress(
        self,
        progress: float,
        *,
        message: Optional[str] = None,
        queue: Optional[Union[QueueInfo, Dict[str, Any]]] = None,
        stage: Optional[Union[StageInfo, Dict[str, Any]]] = None,
        estimated_completion_at: Optional[Union[datetime, str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> "Job":
        """
        Report progress (0-100). The server clamps the value and merges metadata.

        Returns:
            This handle, updated from the response

        Raises:
            SeennError: On API errors
        """
        body: Dict[str, Any] = {"progress": progress}
        body.update(request_body(
            message=message,
            queue=queue,
            stage=stage,
            estimatedCompletionAt=estimated_completion_at,
            metadata=metadata,
        ))
        return await self._apply("POST", job_path(self.id, "progress"), body, idempotency_key)

    async def complete(
        self,
        *,
        result: Optional[Union[JobResult, Dict[str, Any]]] = None,
        message: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> "Job":
        """Mark the job completed, optionally attaching a result payload."""
        body = request_body(result=result, message=message)
        return await self._apply("POST", job_path(self.id, "complete"), body, idempotency_key)

    async def fail(
        self,
        error: Union[JobError, Dict[str, Any]],
        *,
        retryable: Optional[bool] = None,
        idempotency_key: Optional[str] = None,
    ) -> "Job":
        """
        Mark the job failed.

        Args:
            error: Structured error with code and message
            retryable: Whether the job can be retried by the caller's system
        """
        if not error:
            raise ValueError("error is required to fail a job")
        body = request_body(error=error, retryable=retryable)
        return await self._apply("POST", job_path(self.id, "fail"), body, idempotency_key)

    async def refresh(self) -> "Job":
        """Re-fetch the job to pick up changes made elsewhere."""
        return await self._apply("GET", job_path(self.id), None, None)

    async def _apply(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]],
        idempotency_key: Optional[str],
    ) -> "Job":
        async with self._lock:
            data = await self._http.request(
                method, path, json=body, idempotency_key=idempotency_key
            )
            self._snapshot = self._snapshot.updated_from(decode(JobSnapshot.from_dict, data))
        return self

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        """True once the job is completed or failed."""
        return self._snapshot.is_terminal

    @property
    def is_parent(self) -> bool:
        return self._snapshot.is_parent

    @property
    def is_child(self) -> bool:
        return self._snapshot.is_child

    @property
    def child_progress(self) -> Optional[ChildProgress]:
        """Children counters for parent jobs, None otherwise."""
        return self._snapshot.child_progress

    @property
    def eta_remaining(self) -> Optional[int]:
        """Milliseconds until estimated completion (0 when overdue), None without an ETA."""
        return self._snapshot.eta_remaining_ms()

    @property
    def is_past_eta(self) -> bool:
        """True when a non-terminal job has run past its estimated completion."""
        return self._snapshot.is_past_eta()

    def to_dict(self) -> Dict[str, Any]:
        return self._snapshot.to_dict()

    # ------------------------------------------------------------------
    # Snapshot fields
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> JobSnapshot:
        return self._snapshot

    @property
    def id(self) -> str:
        return self._snapshot.id

    @property
    def app_id(self) -> str:
        return self._snapshot.app_id

    @property
    def user_id(self) -> str:
        return self._snapshot.user_id

    @property
    def job_type(self) -> str:
        return self._snapshot.job_type

    @property
    def title(self) -> str:
        return self._snapshot.title

    @property
    def workflow_id(self) -> Optional[str]:
        return self._snapshot.workflow_id

    @property
    def status(self) -> JobStatus:
        return self._snapshot.status

    @property
    def progress(self) -> float:
        return self._snapshot.progress

    @property
    def message(self) -> Optional[str]:
        return self._snapshot.message

    @property
    def queue(self) -> Optional[QueueInfo]:
        return self._snapshot.queue

    @property
    def stage(self) -> Optional[StageInfo]:
        return self._snapshot.stage

    @property
    def result(self) -> Optional[JobResult]:
        return self._snapshot.result

    @property
    def error(self) -> Optional[JobError]:
        return self._snapshot.error

    @property
    def metadata(self) -> Optional[Dict[str, Any]]:
        return self._snapshot.metadata

    @property
    def estimated_completion_at(self) -> Optional[datetime]:
        return self._snapshot.estimated_completion_at

    @property
    def eta_confidence(self) -> Optional[float]:
        return self._snapshot.eta_confidence

    @property
    def eta_based_on(self) -> Optional[int]:
        return self._snapshot.eta_based_on

    @property
    def created_at(self) -> Optional[datetime]:
        return self._snapshot.created_at

    @property
    def updated_at(self) -> Optional[datetime]:
        return self._snapshot.updated_at

    @property
    def started_at(self) -> Optional[datetime]:
        return self._snapshot.started_at

    @property
    def completed_at(self) -> Optional[datetime]:
        return self._snapshot.completed_at

    @property
    def parent(self) -> Optional[ParentInfo]:
        return self._snapshot.parent

    @property
    def children(self) -> Optional[ChildrenStats]:
        return self._snapshot.children

    @property
    def child_progress_mode(self) -> Optional[ChildProgressMode]:
        return self._snapshot.child_progress_mode
