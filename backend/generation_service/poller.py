"""
Completion poller for asynchronous generation jobs.

Replicate answers a prediction submission immediately with a job id; the
image only exists once the job reaches `succeeded`. `wait_for_completion`
turns that into a blocking call with a bounded number of status checks.

Each attempt waits one interval *before* querying, so the first status
check never happens sooner than `interval` seconds after submission.
Passing a `threading.Event` as `cancel_event` lets the caller stop the loop
early (request deadline, shutdown); the wait returns as soon as the event is
set.
"""

import logging
import os
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from dotenv import load_dotenv

from backend.common.errors import JobFailed, JobTimeoutOrMissingOutput, JobCancelled

load_dotenv()

POLL_INTERVAL_SECONDS = float(os.getenv("GENERATION_POLL_INTERVAL", 1))
POLL_MAX_ATTEMPTS = int(os.getenv("GENERATION_POLL_MAX_ATTEMPTS", 30))

SUCCESS_STATUSES = frozenset({"succeeded"})
FAILURE_STATUSES = frozenset({"failed", "canceled"})


@dataclass(frozen=True)
class JobStatus:
    """Snapshot of a generation job. `output` is only set on success."""

    status: str
    output: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status in SUCCESS_STATUSES

    @property
    def failed(self) -> bool:
        return self.status in FAILURE_STATUSES


def wait_for_completion(
    job_id: str,
    fetch_status: Callable[[str], JobStatus],
    interval: float = POLL_INTERVAL_SECONDS,
    max_attempts: int = POLL_MAX_ATTEMPTS,
    cancel_event: Optional[threading.Event] = None,
) -> str:
    """
    Poll a job until it finishes and return its output reference.

    Args:
        job_id (str): Identifier issued by the generation service.
        fetch_status (callable): Returns the current JobStatus for an id.
        interval (float): Seconds to wait before every status check.
        max_attempts (int): Maximum number of status checks.
        cancel_event (threading.Event, optional): Set it to abort polling.

    Returns:
        str: The output reference (image URL).

    Raises:
        JobFailed: The job reported a terminal failure.
        JobTimeoutOrMissingOutput: No success within the budget, or success without output.
        JobCancelled: `cancel_event` was set before the job finished.
    """
    if cancel_event is None:
        cancel_event = threading.Event()

    for attempt in range(1, max_attempts + 1):
        if cancel_event.wait(interval):
            raise JobCancelled(f"Generate dibatalkan (job {job_id})")

        job = fetch_status(job_id)
        logging.debug(f"[Poller] Job {job_id} attempt {attempt}/{max_attempts}: {job.status}")

        if job.succeeded:
            if not job.output:
                break
            logging.info(f"[Poller] Job {job_id} succeeded after {attempt} checks.")
            return job.output
        if job.failed:
            raise JobFailed("Generate gagal")

    raise JobTimeoutOrMissingOutput("Generate timeout atau gagal")
