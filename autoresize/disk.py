"""Free space inspection and online filesystem growing.

Both talk to the operating system through external tools: `findmnt` maps
between block devices and mountpoints and `resize2fs` grows a mounted ext
filesystem to the size of its (already enlarged) block device.
"""

import os
import subprocess
from subprocess import PIPE, STDOUT

import structlog
from autoresize.errors import FilesystemResizeFailed, HostEnvironmentError
from autoresize.subprocess_helper import stream_popen_output

_log = structlog.get_logger()

GiB = 1024**3

REQUIRED_TOOLS = ("findmnt", "resize2fs")


class DiskSpace:
    """Reports free space of a mounted device or mountpoint."""

    def __init__(self, log=_log):
        self.log = log

    def _findmnt(self, path, column):
        try:
            result = subprocess.run(
                ["findmnt", "--noheadings", "--output", column, path],
                check=True,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            raise HostEnvironmentError("findmnt is not installed")
        except subprocess.CalledProcessError as e:
            self.log.debug(
                "findmnt-failed",
                path=path,
                returncode=e.returncode,
                stderr=e.stderr,
            )
            raise HostEnvironmentError(
                f"{path} is neither a mounted device nor a mountpoint"
            )

        # A device mounted at several places yields one line per mount.
        lines = [l.strip() for l in result.stdout.splitlines() if l.strip()]
        if not lines:
            raise HostEnvironmentError(f"findmnt returned nothing for {path}")
        return lines[0]

    def mountpoint(self, path):
        return self._findmnt(path, "TARGET")

    def resolve_device(self, path):
        """Returns the block device backing `path`.

        resize2fs wants the device, not the mountpoint.
        """
        device = self._findmnt(path, "SOURCE")
        self.log.debug("resolve-device", path=path, device=device)
        return device

    def free_space(self, path):
        """Returns the space available to unprivileged users in whole GiB."""
        mountpoint = self.mountpoint(path)
        try:
            statvfs = os.statvfs(mountpoint)
        except OSError as e:
            raise HostEnvironmentError(
                f"cannot query free space of {mountpoint}: {e}"
            )
        free = statvfs.f_frsize * statvfs.f_bavail // GiB
        self.log.debug(
            "free-space", path=path, mountpoint=mountpoint, free_gb=free
        )
        return free


class Filesystem:
    """Grows an ext2/3/4 filesystem while it is mounted."""

    command = "resize2fs"

    def __init__(self, log=_log):
        self.log = log

    def grow_filesystem(self, device):
        self.log.info(
            "resize-filesystem",
            _replace_msg="Growing filesystem on {device}",
            device=device,
        )
        try:
            proc = subprocess.Popen(
                [self.command, device], stdout=PIPE, stderr=STDOUT, text=True
            )
        except FileNotFoundError:
            raise FilesystemResizeFailed(f"{self.command} is not installed")

        lines = stream_popen_output(proc, self.log, "resize-filesystem-output")
        proc.wait()

        if proc.returncode != 0:
            raise FilesystemResizeFailed(
                f"{self.command} {device} failed with exit code "
                f"{proc.returncode}",
                output="\n".join(lines),
            )

        self.log.info("resize-filesystem-finished", device=device)
