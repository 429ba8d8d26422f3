"""
Seenn client for job state tracking.

Report and query the lifecycle of long-running jobs against the Seenn API.
"""

from seenn.client import (
    SeennClient,
    JobsResource,
    EtaResource,
    JobList,
    ParentWithChildren,
    BatchResult,
    get_seenn_client,
)
from seenn.config import SeennConfig, __version__
from seenn.exceptions import SeennError, ErrorKind, RateLimitInfo
from seenn.http import HttpClient, calculate_backoff_delay, is_idempotent
from seenn.job import Job
from seenn.models import (
    JobSnapshot,
    JobStatus,
    ChildProgressMode,
    QueueInfo,
    StageInfo,
    JobResult,
    JobError,
    ParentInfo,
    ChildrenStats,
    ChildProgress,
    ChildJobSummary,
    EtaStats,
)

__all__ = [
    "__version__",
    # Client
    "SeennClient",
    "SeennConfig",
    "JobsResource",
    "EtaResource",
    "JobList",
    "ParentWithChildren",
    "BatchResult",
    "get_seenn_client",
    # Executor
    "HttpClient",
    "calculate_backoff_delay",
    "is_idempotent",
    # Exceptions
    "SeennError",
    "ErrorKind",
    "RateLimitInfo",
    # Jobs
    "Job",
    "JobSnapshot",
    "JobStatus",
    "ChildProgressMode",
    "QueueInfo",
    "StageInfo",
    "JobResult",
    "JobError",
    "ParentInfo",
    "ChildrenStats",
    "ChildProgress",
    "ChildJobSummary",
    "EtaStats",
]
