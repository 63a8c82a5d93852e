from autoresize.errors import RemoteError
from autoresize.volumes import Action


class FakeCmdStream:
    def __init__(self, content):
        self.content = content
        self.line_gen = (l for l in content.splitlines(keepends=True))

    def readline(self):
        try:
            return next(self.line_gen)
        except StopIteration:
            return ""

    def read(self):
        return self.content


class FakePopen:
    def __init__(self, cmd, stdout="", returncode=0, pid=123):
        self.cmd = cmd
        self.stdout = FakeCmdStream(stdout)
        self.returncode = returncode
        self.pid = pid

    def wait(self):
        return self.returncode


class FakeDiskSpace:
    """Returns the given free space readings in order, repeating the last."""

    def __init__(self, readings, device="/dev/sda"):
        self.readings = list(readings)
        self.device = device
        self.queried = []

    def free_space(self, path):
        self.queried.append(path)
        if len(self.readings) > 1:
            return self.readings.pop(0)
        return self.readings[0]

    def resolve_device(self, path):
        return self.device


class FakeFilesystem:
    def __init__(self):
        self.grown = []

    def grow_filesystem(self, device):
        self.grown.append(device)


class FakeVolumeAPI:
    """Records calls instead of talking to the API."""

    def __init__(self, volume=None, statuses=("completed",), fail_on=None):
        self.volume = volume
        self.statuses = list(statuses)
        self.fail_on = fail_on
        self.calls = []

    def _call(self, name, *args):
        self.calls.append((name,) + args)
        if name == self.fail_on:
            raise RemoteError(500, "internal error")

    def find_volume(self, region, name):
        self._call("find_volume", region, name)
        return self.volume

    def resize_volume(self, volume, size):
        self._call("resize_volume", volume.id, size)
        return Action(id=42, status="in-progress")

    def poll_action(self, action_id):
        self._call("poll_action", action_id)
        if len(self.statuses) > 1:
            return self.statuses.pop(0)
        return self.statuses[0]

    def count(self, name):
        return len([c for c in self.calls if c[0] == name])
