"""Grows a cloud volume and its filesystem when free space runs low.

Theory of operation: if the filesystem on the configured device has less
free space than the buffer, the volume is enlarged by exactly the buffer
(not to an absolute size). Repeated low-space events keep growing the
volume in fixed steps. After the provider reports the resize action as
completed, the mounted filesystem is grown online to the new device size.

Nothing is persisted. When a run fails midway, the next scheduled run
starts from scratch: it sees low space again or finds that the filesystem
is already large enough.
"""

import enum
import os
import shutil
import time
from typing import NamedTuple, Optional, Protocol

import structlog
from autoresize.config import Config
from autoresize.disk import REQUIRED_TOOLS
from autoresize.errors import HostEnvironmentError
from autoresize.polling import wait_for_action

_log = structlog.get_logger()


class FreeSpaceProvider(Protocol):
    def free_space(self, path) -> int:
        ...

    def resolve_device(self, path) -> str:
        ...


class FilesystemResizer(Protocol):
    def grow_filesystem(self, device) -> None:
        ...


class State(enum.Enum):
    CHECKING_SPACE = "checking-space"
    LOOKING_UP_VOLUME = "looking-up-volume"
    RESIZING_VOLUME = "resizing-volume"
    POLLING = "polling"
    RESIZING_FILESYSTEM = "resizing-filesystem"
    DONE = "done"


class ResizeResult(NamedTuple):
    resized: bool
    free_before: int
    free_after: int
    old_size: Optional[int]
    new_size: Optional[int]
    duration: float


def check_environment(tools=REQUIRED_TOOLS, log=_log):
    """Fails early if we can't resize filesystems on this machine."""
    if os.geteuid() != 0:
        raise HostEnvironmentError(
            "This command needs root permissions to resize filesystems. "
            "You might be able to run it with `sudo`."
        )
    missing = [tool for tool in tools if shutil.which(tool) is None]
    if missing:
        raise HostEnvironmentError(
            "Required tool(s) not found in PATH: " + ", ".join(missing)
        )
    log.debug("check-environment-ok", tools=list(tools))


class Resizer:
    def __init__(
        self,
        config: Config,
        space: FreeSpaceProvider,
        resizer: FilesystemResizer,
        api,
        log=_log,
        clock=time.monotonic,
    ):
        self.config = config
        self.space = space
        self.resizer = resizer
        self.api = api
        self.log = log
        self.clock = clock
        self.state = None

    def _enter(self, state):
        self.log.debug(
            "resize-state",
            state=state.value,
            previous=self.state.value if self.state else None,
        )
        self.state = state

    def run(self) -> ResizeResult:
        config = self.config
        started = self.clock()

        self._enter(State.CHECKING_SPACE)
        free_before = self.space.free_space(config.device)
        if free_before >= config.buffer:
            self.log.info(
                "free-space-sufficient",
                _replace_msg=(
                    "{device} has {free} GB free (buffer {buffer} GB), "
                    "nothing to do."
                ),
                device=config.device,
                free=free_before,
                buffer=config.buffer,
            )
            self._enter(State.DONE)
            return ResizeResult(
                resized=False,
                free_before=free_before,
                free_after=free_before,
                old_size=None,
                new_size=None,
                duration=self.clock() - started,
            )

        self.log.info(
            "free-space-low",
            _replace_msg=(
                "{device} has only {free} GB free (buffer {buffer} GB), "
                "resizing volume {volume}."
            ),
            device=config.device,
            free=free_before,
            buffer=config.buffer,
            volume=config.volume,
        )

        self._enter(State.LOOKING_UP_VOLUME)
        volume = self.api.find_volume(config.region, config.volume)
        new_size = volume.size + config.buffer
        self.log.info(
            "volume-found",
            volume_id=volume.id,
            region=volume.region,
            size=volume.size,
            new_size=new_size,
        )

        self._enter(State.RESIZING_VOLUME)
        action = self.api.resize_volume(volume, new_size)
        self.log.info(
            "resize-volume",
            _replace_msg=(
                "Requested resize of {volume} from {size} GB to "
                "{new_size} GB (action {action_id})."
            ),
            volume=volume.name,
            size=volume.size,
            new_size=new_size,
            action_id=action.id,
        )

        self._enter(State.POLLING)
        wait_for_action(
            self.api,
            action.id,
            interval=config.poll_interval,
            timeout=config.poll_timeout,
            max_polls=config.max_polls,
            log=self.log,
        )

        self._enter(State.RESIZING_FILESYSTEM)
        device = self.space.resolve_device(config.device)
        self.resizer.grow_filesystem(device)

        self._enter(State.DONE)
        free_after = self.space.free_space(config.device)
        duration = self.clock() - started
        self.log.info(
            "resize-finished",
            _replace_msg=(
                "Resize finished in {duration:.1f}s, {device} now has "
                "{free} GB free."
            ),
            device=config.device,
            free=free_after,
            duration=duration,
            size=new_size,
        )
        return ResizeResult(
            resized=True,
            free_before=free_before,
            free_after=free_after,
            old_size=volume.size,
            new_size=new_size,
            duration=duration,
        )
