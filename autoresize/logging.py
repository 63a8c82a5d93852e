"""Structured logging for do-volume-autoresize.

Events are rendered as single human-readable lines. The console gets info
and above (debug with --verbose), optionally prefixed with a timestamp.
An optional log file always gets everything, timestamped.
"""

import os
import string
import sys
import traceback
from pathlib import Path
from typing import Optional

import stamina
import structlog

LOGFILE_NAME = "do-volume-autoresize.log"
_EVENT_WIDTH = 30  # pad the event name to so many characters

_initialized = False
_log_file = None


class PartialFormatter(string.Formatter):
    """
    A string formatter that doesn't break if values are missing or formats
    are wrong. Missing values and bad formats are replaced by a fixed string.

    formatter = PartialFormatter(missing='?', bad_format='!')
    formatted_str = formatter.format("{exists} {missing}", exists=1)
    formatted_str == "1 ?"
    """

    def __init__(self, missing="<missing>", bad_format="<bad format>"):
        self.missing = missing
        self.bad_format = bad_format

    def get_field(self, field_name, args, kwargs):
        try:
            val = super().get_field(field_name, args, kwargs)
        except (KeyError, AttributeError):
            val = (None, field_name)
        return val

    def format_field(self, value, format_spec):
        if value is None:
            return self.missing
        try:
            return super().format_field(value, format_spec)
        except ValueError:
            return self.bad_format


def prefix(prefix, line):
    return "{}>\t".format(prefix) + line.replace(
        "\n", "\n{}>\t".format(prefix)
    )


def _pad(s, l):
    """
    Pads *s* to length *l*.
    """
    missing = l - len(s)
    return s + " " * (missing if missing > 0 else 0)


class LineRenderer:
    """
    Renders `event_dict` as an aligned line: optional timestamp, level
    letter, event name and either the formatted `_replace_msg` or the
    remaining keys. Events below `min_level` render as empty string.
    """

    LEVELS = ["critical", "error", "warning", "info", "debug"]

    def __init__(self, min_level, timestamps=False, pad_event=_EVENT_WIDTH):
        self.min_level = self.LEVELS.index(min_level.lower())
        self.timestamps = timestamps
        self._pad_event = pad_event

    def __call__(self, logger, method_name, event_dict):
        level = event_dict.pop("level", "info")
        if level == "warn":
            level = "warning"
        if self.LEVELS.index(level) > self.min_level:
            return ""

        parts = []
        ts = event_dict.pop("timestamp", None)
        if self.timestamps and ts is not None:
            parts.append(str(ts))
        parts.append(level[0].upper())
        parts.append(_pad(event_dict.pop("event"), self._pad_event))

        replace_msg = event_dict.pop("_replace_msg", None)
        cmd_output_line = event_dict.pop("cmd_output_line", None)
        exception_traceback = event_dict.pop("exception_traceback", None)
        stack = event_dict.pop("stack", None)

        if replace_msg:
            parts.append(PartialFormatter().format(replace_msg, **event_dict))
        elif cmd_output_line is None:
            parts.append(
                " ".join(
                    key + "=" + repr(event_dict[key])
                    for key in sorted(event_dict.keys())
                )
            )

        if cmd_output_line is not None:
            parts.append("> " + cmd_output_line)

        line = " ".join(p for p in parts if p)

        if stack is not None:
            line += "\n" + prefix("stack", stack)

        if exception_traceback is not None:
            line += "\n" + prefix("exception", exception_traceback)

        return line


class MultiRenderer:
    """
    Calls multiple renderers with a shallow copy of the event dict and
    collects their output in a dict with the renderer names as keys.
    Must be the last processor in the chain.
    """

    def __init__(self, **renderers):
        self.renderers = renderers

    def __repr__(self):
        return "<MultiRenderer {}>".format(list(self.renderers))

    def __call__(self, logger, method_name, event_dict):
        return {
            name: renderer(logger, method_name, event_dict.copy())
            for name, renderer in self.renderers.items()
        }


class MultiLoggerFactory:
    def __init__(self, **factories):
        self.factories = factories

    def __call__(self, *args):
        loggers = {k: f() for k, f in self.factories.items()}
        return MultiLogger(loggers)


class MultiLogger:
    """
    Distributes the messages of a MultiRenderer to the loggers with the
    same name. Empty messages are skipped.
    """

    def __init__(self, loggers):
        self.loggers = loggers

    def __repr__(self):
        return "<MultiLogger {}>".format(list(self.loggers))

    def msg(self, **messages):
        for name, logger in self.loggers.items():
            line = messages.get(name)
            if line:
                logger.msg(line)

    def __getattr__(self, name):
        return self.msg


def process_exc_info(logger, name, event_dict):
    """Transforms exc_info to the exception tuple format returned by
    sys.exc_info(), without rendering it yet.
    """
    exc_info = event_dict.get("exc_info", None)

    if isinstance(exc_info, BaseException):
        event_dict["exc_info"] = (
            exc_info.__class__,
            exc_info,
            exc_info.__traceback__,
        )
    elif isinstance(exc_info, tuple):
        pass
    elif exc_info:
        event_dict["exc_info"] = sys.exc_info()

    return event_dict


def format_exc_info(logger, name, event_dict):
    """Renders exc_info into separate keys for the traceback, the exception
    message and the exception class.
    """
    exc_info = event_dict.pop("exc_info", None)
    if exc_info is not None and exc_info[0] is not None:
        exception_class = exc_info[0]
        event_dict["exception_traceback"] = "".join(
            traceback.format_exception(*exc_info)
        ).rstrip("\n")
        event_dict["exception_msg"] = str(exc_info[1])
        event_dict["exception_class"] = (
            exception_class.__module__ + "." + exception_class.__name__
        )

    return event_dict


def logging_initialized():
    return _initialized


def init_logging(
    verbose: bool, timestamps: bool = False, logdir: Optional[Path] = None
):
    global _initialized, _log_file

    if _log_file is not None:
        _log_file.close()
        _log_file = None

    renderers = {
        "console": LineRenderer(
            min_level="debug" if verbose else "info", timestamps=timestamps
        )
    }
    loggers = {"console": structlog.PrintLoggerFactory(sys.stdout)}

    if logdir is not None:
        _log_file = open(Path(logdir) / LOGFILE_NAME, "a")
        renderers["file"] = LineRenderer(min_level="debug", timestamps=True)
        loggers["file"] = structlog.PrintLoggerFactory(_log_file)

    processors = [
        structlog.processors.add_log_level,
        process_exc_info,
        format_exc_info,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso", utc=False),
        MultiRenderer(**renderers),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.BoundLogger,
        logger_factory=MultiLoggerFactory(**loggers),
        cache_logger_on_first_use=False,
    )

    # Poll progress is logged by wait_for_action; stamina would add a
    # warning for every pending poll.
    stamina.instrumentation.set_on_retry_hooks([])

    _initialized = True
    structlog.get_logger().debug(
        "logging-initialized", pid=os.getpid(), logdir=str(logdir)
    )
