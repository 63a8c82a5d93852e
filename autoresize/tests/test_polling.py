import time

import pytest
from autoresize.errors import ActionFailed, ActionTimeout, RemoteError
from autoresize.polling import wait_for_action
from autoresize.tests import FakeVolumeAPI


def test_wait_until_completed(logger, log):
    api = FakeVolumeAPI(statuses=["in-progress", "in-progress", "completed"])

    polls = wait_for_action(api, 42, interval=0, log=logger)

    assert polls == 3
    assert api.calls == [("poll_action", 42)] * 3
    assert log.has("action-completed", action_id=42, polls=3)


def test_wait_completed_on_first_poll(logger):
    api = FakeVolumeAPI(statuses=["completed"])
    assert wait_for_action(api, 42, interval=0, log=logger) == 1


def test_wait_keeps_polling_on_unknown_status(logger):
    api = FakeVolumeAPI(statuses=["new", "in-progress", "completed"])
    assert wait_for_action(api, 42, interval=0, log=logger) == 3


def test_wait_errored_action_should_raise(logger):
    api = FakeVolumeAPI(statuses=["in-progress", "errored", "completed"])

    with pytest.raises(ActionFailed, match="errored"):
        wait_for_action(api, 42, interval=0, log=logger)

    assert api.count("poll_action") == 2


def test_wait_gives_up_after_max_polls(logger, log):
    api = FakeVolumeAPI(statuses=["in-progress"])

    with pytest.raises(ActionTimeout, match="still in-progress after 5 polls"):
        wait_for_action(api, 42, interval=0, max_polls=5, log=logger)

    assert api.count("poll_action") == 5
    assert not log.has("action-completed")


def test_wait_api_error_is_not_retried(logger):
    api = FakeVolumeAPI(fail_on="poll_action")

    with pytest.raises(RemoteError):
        wait_for_action(api, 42, interval=0, log=logger)

    assert api.count("poll_action") == 1


def test_wait_gives_up_after_timeout(logger, log):
    api = FakeVolumeAPI(statuses=["in-progress"])

    start = time.monotonic()
    with pytest.raises(ActionTimeout, match="still in-progress"):
        wait_for_action(
            api, 42, interval=0.05, timeout=0.3, max_polls=1000, log=logger
        )
    elapsed = time.monotonic() - start

    assert elapsed < 1
    assert 1 < api.count("poll_action") < 1000
    assert not log.has("action-completed")


def test_wait_interval_is_fixed(logger):
    api = FakeVolumeAPI(statuses=["in-progress"] * 4 + ["completed"])

    start = time.monotonic()
    polls = wait_for_action(api, 42, interval=0.1, timeout=10, log=logger)
    elapsed = time.monotonic() - start

    assert polls == 5
    # Four waits of 0.1s each, a growing backoff would need 1.5s.
    assert 0.35 < elapsed < 1
