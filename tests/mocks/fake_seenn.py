"""
In-memory Seenn API server for tests.

Implements the /v1/jobs and /v1/eta endpoints closely enough to exercise the
client end to end, and records every request for assertions.

Usage:
    server = FakeSeennServer()
    client = SeennClient(api_key="sk_test_123", transport=server.get_mock_transport())

    # Force the next matching call to return a canned response
    server.queue_response("GET", "/v1/jobs/job_1", httpx.Response(503))
"""

import itertools
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import httpx

BASE_TIME = datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


def error_response(status: int, code: str, message: str, details: Optional[Dict] = None) -> httpx.Response:
    error: Dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return httpx.Response(status, json={"error": error})


class FakeSeennServer:
    """Deterministic Seenn API double backed by dictionaries."""

    def __init__(self):
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.eta_stats: Dict[str, Dict[str, Any]] = {}
        self.requests: List[httpx.Request] = []
        self._queued: List[Tuple[str, str, httpx.Response]] = []
        self._ids = itertools.count(1)
        self._clock = itertools.count(0)

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def queue_response(self, method: str, path: str, response: httpx.Response) -> None:
        """Return response for the next request matching method and path."""
        self._queued.append((method.upper(), path, response))

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if (method is None or r.method == method.upper())
            and (path is None or r.url.path == path)
        ]

    def add_eta_stats(self, eta_key: str, **fields: Any) -> Dict[str, Any]:
        stats = {"etaKey": eta_key, "sampleCount": 10, "avgDurationMs": 60000}
        stats.update(fields)
        self.eta_stats[eta_key] = stats
        return stats

    def _now(self) -> str:
        ts = BASE_TIME + timedelta(seconds=next(self._clock))
        return ts.isoformat().replace("+00:00", "Z")

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def handle_create(self, body: Dict[str, Any]) -> httpx.Response:
        for required in ("jobType", "userId", "title"):
            if not body.get(required):
                return error_response(
                    400, "VALIDATION_ERROR", f"{required} is required", {"field": required}
                )

        now = self._now()
        job_id = f"job_{next(self._ids)}"
        job: Dict[str, Any] = {
            "id": job_id,
            "appId": "app_test",
            "userId": body["userId"],
            "jobType": body["jobType"],
            "title": body["title"],
            "status": "pending",
            "progress": 0,
            "createdAt": now,
            "updatedAt": now,
        }
        for key in ("workflowId", "metadata", "queue", "stage", "estimatedCompletionAt"):
            if key in body:
                job[key] = body[key]

        if body.get("totalChildren") is not None:
            total = body["totalChildren"]
            job["children"] = {
                "total": total, "completed": 0, "failed": 0, "running": 0, "pending": total,
            }
            job["childProgressMode"] = body.get("childProgressMode", "average")

        parent_id = body.get("parentJobId")
        if parent_id:
            parent = self.jobs.get(parent_id)
            if parent is None:
                return error_response(404, "NOT_FOUND", "Parent job not found", {"id": parent_id})
            job["parent"] = {"parentJobId": parent_id, "childIndex": body.get("childIndex", 0)}
            parent["updatedAt"] = now

        self.jobs[job_id] = job
        return httpx.Response(201, json=job)

    def handle_list(self, params: httpx.QueryParams) -> httpx.Response:
        user_jobs = [j for j in self.jobs.values() if j["userId"] == params.get("userId")]
        start = int(params.get("cursor") or 0)
        limit = int(params.get("limit") or 20)
        page = user_jobs[start:start + limit]
        result: Dict[str, Any] = {"jobs": page}
        if start + limit < len(user_jobs):
            result["nextCursor"] = str(start + limit)
        return httpx.Response(200, json=result)

    def handle_update(self, job: Dict[str, Any], action: str, body: Dict[str, Any]) -> httpx.Response:
        if job["status"] in ("completed", "failed"):
            return error_response(409, "JOB_TERMINAL", "Job is already in a terminal state")

        now = self._now()
        if action == "progress":
            job["progress"] = max(job["progress"], min(100, body.get("progress", 0)))
            if job["status"] == "pending":
                job["status"] = "running"
                job["startedAt"] = now
            for key in ("message", "queue", "stage", "estimatedCompletionAt"):
                if key in body:
                    job[key] = body[key]
            if "metadata" in body:
                job["metadata"] = {**job.get("metadata", {}), **body["metadata"]}
        elif action == "complete":
            job["status"] = "completed"
            job["progress"] = 100
            job["completedAt"] = now
            for key in ("result", "message"):
                if key in body:
                    job[key] = body[key]
        elif action == "fail":
            if not body.get("error"):
                return error_response(400, "VALIDATION_ERROR", "error is required")
            job["status"] = "failed"
            job["error"] = body["error"]
            job["completedAt"] = now
        else:
            return error_response(404, "NOT_FOUND", "Route not found")

        job["updatedAt"] = now
        return httpx.Response(200, json=job)

    def handle_children(self, parent: Dict[str, Any]) -> httpx.Response:
        children = [
            {
                "id": j["id"],
                "childIndex": j["parent"]["childIndex"],
                "title": j["title"],
                "status": j["status"],
                "progress": j["progress"],
                "createdAt": j["createdAt"],
                "updatedAt": j["updatedAt"],
            }
            for j in self.jobs.values()
            if j.get("parent", {}).get("parentJobId") == parent["id"]
        ]
        children.sort(key=lambda c: c["childIndex"])
        return httpx.Response(200, json={"parent": parent, "children": children})

    def route(self, request: httpx.Request) -> httpx.Response:
        method = request.method
        parts = [p for p in request.url.path.split("/") if p]
        body = json.loads(request.content) if request.content else {}

        if parts[:2] == ["v1", "jobs"]:
            if len(parts) == 2:
                if method == "POST":
                    return self.handle_create(body)
                if method == "GET":
                    return self.handle_list(request.url.params)

            job = self.jobs.get(parts[2]) if len(parts) > 2 else None
            if job is None:
                return error_response(404, "NOT_FOUND", "Job not found", {"id": parts[2]})
            if len(parts) == 3 and method == "GET":
                return httpx.Response(200, json=job)
            if len(parts) == 4 and parts[3] == "children" and method == "GET":
                return self.handle_children(job)
            if len(parts) == 4 and method == "POST":
                return self.handle_update(job, parts[3], body)

        if parts[:2] == ["v1", "eta"]:
            if len(parts) == 2 and method == "GET":
                return httpx.Response(200, json={"stats": list(self.eta_stats.values())})
            key = parts[2]
            if method == "GET":
                stats = self.eta_stats.get(key)
                if stats is None:
                    return error_response(404, "NOT_FOUND", "No statistics", {"id": key})
                return httpx.Response(200, json=stats)
            if method == "DELETE":
                self.eta_stats.pop(key, None)
                return httpx.Response(204)

        return error_response(404, "NOT_FOUND", "Route not found")

    def get_mock_transport(self) -> httpx.MockTransport:
        """Create an httpx MockTransport for this fake server."""
        def handle_request(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)

            for i, (method, path, response) in enumerate(self._queued):
                if method == request.method and path == request.url.path:
                    del self._queued[i]
                    return response

            try:
                return self.route(request)
            except Exception as e:
                return httpx.Response(500, json={"error": {"code": "INTERNAL", "message": str(e)}})

        return httpx.MockTransport(handle_request)
