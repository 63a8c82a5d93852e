"""Exceptions raised while checking or resizing a volume.

Every error is terminal for a run. The scheduler re-invokes the command
later, so nothing here is retried.
"""


class ResizeError(Exception):
    def __init__(self, msg=None):
        self.msg = msg or ""
        super().__init__(self.msg)


class ConfigurationError(ResizeError):
    """A required setting is missing or malformed."""


class HostEnvironmentError(ResizeError):
    """Missing privileges, missing tools or an unmounted device."""


class FilesystemResizeFailed(HostEnvironmentError):
    def __init__(self, msg=None, output=None):
        self.output = output
        lines = []
        if msg:
            lines.append(msg)
        if output:
            lines.append("Output:")
            lines.append(output)
        super().__init__("\n".join(lines))


class RemoteError(ResizeError):
    """The cloud API returned an error or something that is not JSON."""

    def __init__(self, status, body, msg=None):
        self.status = status
        self.body = body
        super().__init__(
            msg or f"API request failed (status {status}): {body}"
        )


class VolumeNotFound(ResizeError):
    pass


class AmbiguousVolume(VolumeNotFound):
    pass


class InvalidResize(ResizeError, ValueError):
    pass


class ActionFailed(ResizeError):
    pass


class ActionTimeout(ResizeError):
    pass
