import threading

import pytest
from unittest.mock import MagicMock, call

from backend.common.errors import JobFailed, JobTimeoutOrMissingOutput, JobCancelled
from backend.generation_service.poller import wait_for_completion, JobStatus


def statuses(*items):
    fetch = MagicMock(side_effect=list(items))
    return fetch


def test_success_after_three_pending_checks():
    fetch = statuses(
        JobStatus("starting"),
        JobStatus("processing"),
        JobStatus("processing"),
        JobStatus("succeeded", "X"),
    )
    assert wait_for_completion("job-1", fetch, interval=0) == "X"
    assert fetch.call_count == 4
    fetch.assert_called_with("job-1")


def test_timeout_after_full_budget():
    fetch = MagicMock(return_value=JobStatus("processing"))
    with pytest.raises(JobTimeoutOrMissingOutput):
        wait_for_completion("job-1", fetch, interval=0, max_attempts=30)
    assert fetch.call_count == 30


def test_failure_stops_polling_immediately():
    fetch = statuses(
        JobStatus("processing"),
        JobStatus("failed"),
        JobStatus("succeeded", "never"),
    )
    with pytest.raises(JobFailed):
        wait_for_completion("job-1", fetch, interval=0)
    assert fetch.call_count == 2


def test_canceled_job_counts_as_failure():
    fetch = statuses(JobStatus("canceled"))
    with pytest.raises(JobFailed):
        wait_for_completion("job-1", fetch, interval=0)


def test_success_without_output():
    fetch = statuses(JobStatus("succeeded", None), JobStatus("succeeded", "late"))
    with pytest.raises(JobTimeoutOrMissingOutput):
        wait_for_completion("job-1", fetch, interval=0)
    assert fetch.call_count == 1


def test_unknown_status_is_not_terminal():
    fetch = statuses(JobStatus("queued-somewhere"), JobStatus("succeeded", "url"))
    assert wait_for_completion("job-1", fetch, interval=0) == "url"


def test_wait_happens_before_each_query():
    manager = MagicMock()
    event = MagicMock(spec=threading.Event)
    event.wait.return_value = False
    fetch = MagicMock(side_effect=[JobStatus("processing"), JobStatus("succeeded", "X")])
    manager.attach_mock(event.wait, "wait")
    manager.attach_mock(fetch, "fetch")

    wait_for_completion("job-1", fetch, interval=1.5, cancel_event=event)

    assert manager.mock_calls == [
        call.wait(1.5),
        call.fetch("job-1"),
        call.wait(1.5),
        call.fetch("job-1"),
    ]


def test_cancelled_before_first_query():
    event = threading.Event()
    event.set()
    fetch = MagicMock()
    with pytest.raises(JobCancelled):
        wait_for_completion("job-1", fetch, interval=0, cancel_event=event)
    fetch.assert_not_called()


def test_cancelled_mid_poll():
    event = threading.Event()

    def fetch(job_id):
        if fetch.calls == 2:
            event.set()
        fetch.calls += 1
        return JobStatus("processing")
    fetch.calls = 0

    with pytest.raises(JobCancelled):
        wait_for_completion("job-1", fetch, interval=0, cancel_event=event)
    assert fetch.calls == 3
