"""Waiting for asynchronous API actions to finish."""

import stamina
import structlog
from autoresize.errors import ActionFailed, ActionTimeout
from autoresize.volumes import ACTION_COMPLETED, ACTION_ERRORED

_log = structlog.get_logger()

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_POLL_TIMEOUT = 600.0
DEFAULT_MAX_POLLS = 600


class ActionPending(Exception):
    def __init__(self, action_id, status):
        self.action_id = action_id
        self.status = status
        super().__init__(f"action {action_id} is {status}")


def wait_for_action(
    api,
    action_id,
    interval=DEFAULT_POLL_INTERVAL,
    timeout=DEFAULT_POLL_TIMEOUT,
    max_polls=DEFAULT_MAX_POLLS,
    log=_log,
):
    """Polls the action every `interval` seconds until it is completed.

    Gives up with ActionTimeout after `max_polls` polls or `timeout`
    seconds, whichever comes first. An errored action raises ActionFailed
    right away, as do API errors: only a pending status is retried.

    Returns the number of polls it took.
    """
    polls = 0
    status = None
    try:
        for attempt in stamina.retry_context(
            on=ActionPending,
            attempts=max_polls,
            timeout=timeout,
            wait_initial=interval,
            wait_max=interval,
            wait_jitter=0,
            wait_exp_base=1,
        ):
            with attempt:
                polls += 1
                status = api.poll_action(action_id)
                log.debug(
                    "action-status",
                    action_id=action_id,
                    status=status,
                    poll=polls,
                )
                if status == ACTION_ERRORED:
                    raise ActionFailed(
                        f"action {action_id} finished with status {status}"
                    )
                if status != ACTION_COMPLETED:
                    raise ActionPending(action_id, status)
    except ActionPending:
        raise ActionTimeout(
            f"action {action_id} still {status} after {polls} polls, "
            "giving up"
        )

    log.info(
        "action-completed",
        _replace_msg="Action {action_id} completed after {polls} polls.",
        action_id=action_id,
        polls=polls,
    )
    return polls
