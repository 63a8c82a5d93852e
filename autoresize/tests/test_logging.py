import autoresize.logging
import pytest
from autoresize.logging import (
    LOGFILE_NAME,
    LineRenderer,
    MultiLogger,
    MultiRenderer,
    PartialFormatter,
    format_exc_info,
    init_logging,
    process_exc_info,
)


def test_partial_formatter_missing_value():
    formatter = PartialFormatter()
    assert formatter.format("{exists} {missing}", exists=1) == "1 <missing>"


def test_partial_formatter_bad_format():
    formatter = PartialFormatter()
    assert formatter.format("{value:d}", value="x") == "<bad format>"


@pytest.fixture
def renderer():
    return LineRenderer("info")


def test_render_key_values(renderer):
    line = renderer(
        None,
        "info",
        {"event": "volume-found", "level": "info", "size": 100, "id": "v1"},
    )
    assert line == "I " + "volume-found".ljust(30) + " id='v1' size=100"


def test_render_replace_msg(renderer):
    line = renderer(
        None,
        "info",
        {
            "event": "free-space-low",
            "level": "info",
            "_replace_msg": "{device} has only {free} GB free.",
            "device": "/mnt/data",
            "free": 3,
        },
    )
    assert line.endswith("/mnt/data has only 3 GB free.")
    assert "device=" not in line


def test_render_cmd_output_line(renderer):
    line = renderer(
        None,
        "info",
        {
            "event": "resize-filesystem-output",
            "level": "info",
            "cmd_output_line": "resize2fs 1.46.5 (30-Dec-2021)",
        },
    )
    assert line.endswith("> resize2fs 1.46.5 (30-Dec-2021)")


def test_render_drops_levels_below_minimum(renderer):
    event = {"event": "free-space", "level": "debug", "free_gb": 5}
    assert renderer(None, "debug", event) == ""


def test_render_warn_level(renderer):
    line = renderer(None, "warn", {"event": "careful", "level": "warn"})
    assert line.startswith("W careful")


def test_render_timestamps():
    event = {
        "event": "autoresize-start",
        "level": "info",
        "timestamp": "2026-10-19T12:00:00.000000",
    }
    with_ts = LineRenderer("info", timestamps=True)(None, "info", dict(event))
    without_ts = LineRenderer("info")(None, "info", dict(event))

    assert with_ts.startswith("2026-10-19T12:00:00.000000 I autoresize-start")
    assert without_ts.startswith("I autoresize-start")


def test_exc_info_is_rendered_into_separate_keys():
    try:
        raise ValueError("boom")
    except ValueError:
        event_dict = process_exc_info(None, "error", {"exc_info": True})
    event_dict = format_exc_info(None, "error", event_dict)

    assert "exc_info" not in event_dict
    assert event_dict["exception_msg"] == "boom"
    assert event_dict["exception_class"] == "builtins.ValueError"
    assert "Traceback" in event_dict["exception_traceback"]


def test_exc_info_from_exception_instance():
    exc = RuntimeError("failed")
    event_dict = process_exc_info(None, "error", {"exc_info": exc})
    assert event_dict["exc_info"][1] is exc


class ListLogger:
    def __init__(self):
        self.lines = []

    def msg(self, line):
        self.lines.append(line)


def test_multi_renderer_and_logger():
    multi = MultiRenderer(
        console=LineRenderer("info"), file=LineRenderer("debug")
    )
    console, file = ListLogger(), ListLogger()
    logger = MultiLogger({"console": console, "file": file})

    logger.debug(**multi(None, "debug", {"event": "x", "level": "debug"}))
    logger.info(**multi(None, "info", {"event": "y", "level": "info"}))

    assert [l.split()[1] for l in console.lines] == ["y"]
    assert [l.split()[1] for l in file.lines] == ["x", "y"]


def test_init_logging_again_closes_previous_logfile(log, tmp_path):
    init_logging(False, logdir=tmp_path)
    first = autoresize.logging._log_file

    init_logging(False, True, tmp_path)
    second = autoresize.logging._log_file

    assert first.closed
    assert not second.closed
    assert second.name == str(tmp_path / LOGFILE_NAME)

    init_logging(False)
    assert second.closed
    assert autoresize.logging._log_file is None
