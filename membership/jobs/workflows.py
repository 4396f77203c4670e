"""Temporal workflow that runs one background job.

Each ``perform_later`` call starts one ``RunJobWorkflow``. The workflow runs
the activity registered under the job's class name with the job's
arguments, and Temporal retries it on transient failures.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from temporalio import workflow
from temporalio.common import RetryPolicy


@dataclass
class JobRequest:
    job_name: str
    arguments: list[Any] = field(default_factory=list)
    timeout_seconds: float = 60.0
    maximum_attempts: int = 5


@workflow.defn
class RunJobWorkflow:
    @workflow.run
    async def run(self, request: JobRequest) -> None:
        await workflow.execute_activity(
            request.job_name,
            args=request.arguments,
            start_to_close_timeout=timedelta(seconds=request.timeout_seconds),
            retry_policy=RetryPolicy(
                maximum_attempts=request.maximum_attempts,
                initial_interval=timedelta(seconds=1),
                backoff_coefficient=2.0,
                maximum_interval=timedelta(minutes=5),
            ),
        )
