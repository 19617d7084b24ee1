"""
Report Polling Client
=====================

Small httpx client for scripts that request a report and wait for it:

    with httpx.Client(base_url="http://localhost:8000") as http:
        client = ReportClient(http, token)
        job = client.create_report("Monthly", case_id)
        job = client.wait_for(job["id"])
        pdf = client.download(job["id"])

The server has no way to cancel a job, so `wait_for` gives up after a
bounded time and raises ReportPollTimeout.
"""

import time
from typing import Any, Callable, Dict, Optional

import httpx

DEFAULT_POLL_TIMEOUT = 120.0
DEFAULT_POLL_INTERVAL = 1.5


class ReportClientError(Exception):
    """Non-2xx response from the API."""

    def __init__(self, status_code: int, code: str, message: str):
        self.status_code = status_code
        self.code = code
        super().__init__(f"{status_code} {code}: {message}")


class ReportPollTimeout(Exception):
    """The job did not reach a terminal state in time."""


class ReportFailed(Exception):
    """The job finished in the failed state."""

    def __init__(self, job: Dict[str, Any]):
        self.job = job
        super().__init__(job.get("error") or "Report generation failed")


class ReportClient:
    def __init__(
        self,
        http: httpx.Client,
        token: str,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.http = http
        self.headers = {"Authorization": f"Bearer {token}"}
        self._sleep = sleep
        self._clock = clock

    def _check(self, response: httpx.Response) -> httpx.Response:
        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = None
            # Proxies may answer with non-envelope JSON
            error = body.get("error") if isinstance(body, dict) else None
            if not isinstance(error, dict):
                error = {}
            raise ReportClientError(
                response.status_code,
                error.get("code", "error"),
                error.get("message", response.text[:200]),
            )
        return response

    def create_report(self, title: str, case_id: str, fmt: str = "PDF",
                      description: Optional[str] = None) -> Dict[str, Any]:
        body = {"title": title, "caseId": case_id, "format": fmt}
        if description:
            body["description"] = description
        return self._check(self.http.post("/reports", json=body, headers=self.headers)).json()

    def get_report(self, report_id: str) -> Dict[str, Any]:
        return self._check(self.http.get(f"/reports/{report_id}", headers=self.headers)).json()

    def wait_for(
        self,
        report_id: str,
        timeout: float = DEFAULT_POLL_TIMEOUT,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> Dict[str, Any]:
        """Poll until the job is ready; raise ReportFailed or ReportPollTimeout otherwise."""
        deadline = self._clock() + timeout
        while True:
            job = self.get_report(report_id)
            if job["status"] == "ready":
                return job
            if job["status"] == "failed":
                raise ReportFailed(job)
            if self._clock() >= deadline:
                raise ReportPollTimeout(f"Report {report_id} still {job['status']} after {timeout:.0f}s")
            self._sleep(interval)

    def download(self, report_id: str) -> bytes:
        response = self.http.get(f"/reports/{report_id}/download", headers=self.headers)
        return self._check(response).content
