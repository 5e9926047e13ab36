"""Jobs (`v3/job/...`)."""

from __future__ import annotations

from typing import Any

from treasuredata.adapters.services.base import BaseService, compact, require, seg
from treasuredata.core.domain.models import Job, JobListResponse, JobStatus

JOB_STATUSES = ("queued", "booting", "running", "success", "error", "killed")


class JobsService(BaseService):
    def list(
        self,
        *,
        from_: int | None = None,
        to: int | None = None,
        status: str | None = None,
        slow: bool = False,
    ) -> JobListResponse:
        """List jobs, newest first. `from_`/`to` are positional indexes."""

        params = compact(
            **{"from": from_ or None, "to": to or None, "status": status or None, "slow": "true" if slow else None}
        )
        resp = self._transport.request_json("GET", "v3/job/list", params=params, into=JobListResponse)
        return resp if resp is not None else JobListResponse()

    def get(self, job_id: str) -> Job:
        job_id = require("job_id", job_id)
        return self._transport.request_json("GET", f"v3/job/show/{seg(job_id)}", into=Job)

    def status(self, job_id: str) -> JobStatus:
        job_id = require("job_id", job_id)
        return self._transport.request_json("GET", f"v3/job/status/{seg(job_id)}", into=JobStatus)

    def status_by_domain_key(self, domain_key: str) -> JobStatus:
        domain_key = require("domain_key", domain_key)
        return self._transport.request_json(
            "GET", f"v3/job/status_by_domain_key/{seg(domain_key)}", into=JobStatus
        )

    def kill(self, job_id: str) -> None:
        job_id = require("job_id", job_id)
        self._transport.request("POST", f"v3/job/kill/{seg(job_id)}")

    def result_export(
        self,
        job_id: str,
        *,
        result: str | None = None,
        result_connection: str | None = None,
        result_settings: dict[str, Any] | None = None,
    ) -> Job:
        """Export the result of a finished job; returns the export job."""

        job_id = require("job_id", job_id)
        body = compact(
            result=result or None,
            result_connection=result_connection or None,
            result_settings=result_settings or None,
        )
        return self._transport.request_json("POST", f"v3/job/result_export/{seg(job_id)}", body=body, into=Job)
