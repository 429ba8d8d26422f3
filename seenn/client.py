"""
Seenn API client for job state tracking.

This client handles:
- Job creation, lookup and listing (client.jobs)
- Parent/child batches with concurrent child creation
- ETA statistics lookup and reset (client.eta)

Every call goes through HttpClient, which applies timeouts, retries for
idempotent requests and error classification. Failures surface as SeennError.

SECURITY:
- API key must be stored securely and never logged
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Union
from urllib.parse import quote

import httpx

from seenn.config import SeennConfig
from seenn.exceptions import SeennError, ErrorKind
from seenn.http import HttpClient
from seenn.job import Job, job_path, request_body
from seenn.models import (
    ChildJobSummary,
    ChildProgressMode,
    EtaStats,
    QueueInfo,
    StageInfo,
    decode,
)

logger = logging.getLogger(__name__)

JOBS_PATH = "/v1/jobs"
ETA_PATH = "/v1/eta"


@dataclass
class JobList:
    """One page of jobs. next_cursor is None when there are no more pages."""

    jobs: List[Job] = field(default_factory=list)
    next_cursor: Optional[str] = None


@dataclass
class ParentWithChildren:
    """A parent job handle with flattened summaries of its children."""

    parent: Job
    children: List[ChildJobSummary] = field(default_factory=list)


@dataclass
class BatchResult:
    """Parent handle and child handles (in child index order) from create_batch."""

    parent: Job
    children: List[Job] = field(default_factory=list)


def _eta_path(eta_key: str) -> str:
    return f"{ETA_PATH}/{quote(eta_key, safe='')}"


class JobsResource:
    """Operations under /v1/jobs."""

    def __init__(self, http: HttpClient):
        self._http = http

    def _job(self, data: Dict[str, Any]) -> Job:
        return Job.from_response(data, self._http)

    async def start(
        self,
        job_type: str,
        user_id: str,
        title: str,
        *,
        workflow_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        queue: Optional[Union[QueueInfo, Dict[str, Any]]] = None,
        stage: Optional[Union[StageInfo, Dict[str, Any]]] = None,
        estimated_completion_at: Optional[Any] = None,
        ttl_seconds: Optional[int] = None,
        parent_job_id: Optional[str] = None,
        child_index: Optional[int] = None,
        total_children: Optional[int] = None,
        child_progress_mode: Optional[ChildProgressMode] = None,
        idempotency_key: Optional[str] = None,
    ) -> Job:
        """
        Start a new job.

        Args:
            job_type: Job type identifier (e.g., 'video-generation')
            user_id: User who owns the job
            title: Human-readable title
            workflow_id: Optional workflow/version tag used for ETA bucketing
            metadata: Optional metadata (max 10KB)
            queue: Optional initial queue position
            stage: Optional initial stage
            estimated_completion_at: Optional ETA (datetime or ISO 8601 string)
            ttl_seconds: Optional TTL (server default: 30 days)
            parent_job_id: Parent job id, for child jobs
            child_index: 0-based index within the parent, for child jobs
            total_children: Expected number of children, for parent jobs
            child_progress_mode: How parent progress combines children
            idempotency_key: Makes the call safe to retry

        Returns:
            Job handle built from the response

        Raises:
            SeennError: On API errors
        """
        body = request_body(
            jobType=job_type,
            userId=user_id,
            title=title,
            workflowId=workflow_id,
            metadata=metadata,
            queue=queue,
            stage=stage,
            estimatedCompletionAt=estimated_completion_at,
            ttlSeconds=ttl_seconds,
            parentJobId=parent_job_id,
            childIndex=child_index,
            totalChildren=total_children,
            childProgressMode=child_progress_mode,
        )
        data = await self._http.post(JOBS_PATH, json=body, idempotency_key=idempotency_key)
        return self._job(data)

    async def get(self, job_id: str) -> Job:
        """Get a job by id."""
        data = await self._http.get(job_path(job_id))
        return self._job(data)

    async def list(
        self,
        user_id: str,
        *,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> JobList:
        """
        List jobs for a user, one page at a time.

        Args:
            user_id: Owner of the jobs
            limit: Page size
            cursor: Opaque cursor from a previous page

        Returns:
            JobList with handles and the cursor for the next page
        """
        params: Dict[str, Any] = {"userId": user_id}
        if limit is not None:
            params["limit"] = limit
        if cursor:
            params["cursor"] = cursor

        data = await self._http.get(JOBS_PATH, params=params)
        return JobList(
            jobs=[self._job(j) for j in data.get("jobs", [])],
            next_cursor=data.get("nextCursor") or None,
        )

    async def create_parent(
        self,
        job_type: str,
        user_id: str,
        title: str,
        child_count: int,
        *,
        child_progress_mode: Optional[ChildProgressMode] = None,
        metadata: Optional[Dict[str, Any]] = None,
        ttl_seconds: Optional[int] = None,
        idempotency_key: Optional[str] = None,
    ) -> Job:
        """Create a parent (batch container) job expecting child_count children."""
        return await self.start(
            job_type,
            user_id,
            title,
            total_children=child_count,
            child_progress_mode=child_progress_mode,
            metadata=metadata,
            ttl_seconds=ttl_seconds,
            idempotency_key=idempotency_key,
        )

    async def create_child(
        self,
        parent_job_id: str,
        child_index: int,
        job_type: str,
        user_id: str,
        title: str,
        *,
        metadata: Optional[Dict[str, Any]] = None,
        ttl_seconds: Optional[int] = None,
        idempotency_key: Optional[str] = None,
    ) -> Job:
        """Create a child job at a 0-based index under a parent."""
        return await self.start(
            job_type,
            user_id,
            title,
            parent_job_id=parent_job_id,
            child_index=child_index,
            metadata=metadata,
            ttl_seconds=ttl_seconds,
            idempotency_key=idempotency_key,
        )

    async def get_with_children(self, parent_job_id: str) -> ParentWithChildren:
        """Get a parent job with summaries of all its children."""
        data = await self._http.get(job_path(parent_job_id, "children"))
        if not isinstance(data.get("parent"), dict):
            raise SeennError.invalid_response("Seenn API response is missing the parent job")
        return ParentWithChildren(
            parent=self._job(data["parent"]),
            children=[decode(ChildJobSummary.from_dict, c) for c in data.get("children", [])],
        )

    async def create_batch(
        self,
        job_type: str,
        user_id: str,
        parent_title: str,
        child_titles: List[str],
        *,
        child_progress_mode: Optional[ChildProgressMode] = None,
        metadata: Optional[Dict[str, Any]] = None,
        ttl_seconds: Optional[int] = None,
    ) -> BatchResult:
        """
        Create a parent job and one child per title.

        Children are created concurrently once the parent id is known. All
        child requests settle before the first failure (in index order) is
        raised; children already created are not rolled back. On success the
        parent is refreshed once to pick up its child counters.

        Raises:
            SeennError: If the parent, any child, or the refresh fails
        """
        parent = await self.create_parent(
            job_type,
            user_id,
            parent_title,
            len(child_titles),
            child_progress_mode=child_progress_mode,
            metadata=metadata,
            ttl_seconds=ttl_seconds,
        )

        results = await asyncio.gather(
            *(
                self.create_child(
                    parent.id,
                    index,
                    job_type,
                    user_id,
                    title,
                    ttl_seconds=ttl_seconds,
                )
                for index, title in enumerate(child_titles)
            ),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            logger.error(
                "Seenn batch child creation failed",
                extra={
                    "parent_job_id": parent.id,
                    "requested": len(child_titles),
                    "failed": len(failures),
                },
            )
            raise failures[0]

        await parent.refresh()

        logger.info(
            "Seenn batch created",
            extra={"parent_job_id": parent.id, "child_count": len(results)},
        )
        return BatchResult(parent=parent, children=list(results))


class EtaResource:
    """Operations under /v1/eta (ETA statistics per workflow id or job type)."""

    def __init__(self, http: HttpClient):
        self._http = http

    async def get_stats(self, eta_key: str) -> Optional[EtaStats]:
        """
        Get ETA statistics for one key.

        Returns:
            EtaStats, or None when the server has no statistics for the key yet

        Raises:
            SeennError: On any failure other than not-found
        """
        if not eta_key:
            raise SeennError.validation("eta_key is required", {"field": "etaKey"})

        try:
            data = await self._http.get(_eta_path(eta_key))
        except SeennError as e:
            if e.kind == ErrorKind.NOT_FOUND:
                logger.debug("No ETA statistics yet", extra={"eta_key": eta_key})
                return None
            raise
        return decode(EtaStats.from_dict, data)

    async def list(self) -> List[EtaStats]:
        """List ETA statistics for every key of the app."""
        data = await self._http.get(ETA_PATH)
        return [decode(EtaStats.from_dict, s) for s in data.get("stats", [])]

    async def reset(self, eta_key: str) -> None:
        """Reset ETA statistics for one key (admin use)."""
        if not eta_key:
            raise SeennError.validation("eta_key is required", {"field": "etaKey"})
        await self._http.delete(_eta_path(eta_key))


class SeennClient:
    """
    Async client for the Seenn API.

    All methods are async and should be used with async/await. Configuration
    is fixed at construction.

    SECURITY: API key must be stored securely and never logged.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        debug: Optional[bool] = None,
        config: Optional[SeennConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Seenn client.

        Args:
            api_key: Seenn API key, sk_live_... or sk_test_... (default: from SEENN_API_KEY env)
            base_url: API base URL (default: https://api.seenn.io)
            timeout: Request timeout in seconds (default: 30)
            max_retries: Max attempts for idempotent requests (default: 3)
            debug: Log retry attempts at INFO level
            config: Complete configuration; overrides all other arguments
            transport: Optional httpx transport

        Raises:
            ValueError: If the API key is missing or malformed
        """
        self.config = config or SeennConfig.from_env(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            debug=debug,
        )
        self._http = HttpClient(self.config, transport=transport)
        self.jobs = JobsResource(self._http)
        self.eta = EtaResource(self._http)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._http.close()

    async def __aenter__(self) -> "SeennClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def get_seenn_client(
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
) -> SeennClient:
    """
    Factory function to create a SeennClient.

    Args:
        api_key: Override API key
        base_url: Override API base URL

    Returns:
        Configured SeennClient instance
    """
    return SeennClient(
        api_key=api_key,
        base_url=base_url,
    )
