import configparser
from pathlib import Path
from typing import NamedTuple, Optional

from autoresize.errors import ConfigurationError
from autoresize.polling import (
    DEFAULT_MAX_POLLS,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_POLL_TIMEOUT,
)
from autoresize.volumes import DEFAULT_API_URL, DEFAULT_REQUEST_TIMEOUT

DEFAULT_CONFIG_FILE = Path("/etc/do-volume-autoresize.conf")
DEFAULT_BUFFER = 10
CONFIG_SECTION = "autoresize"

REQUIRED_OPTIONS = {
    "token": "--token (or DIGITALOCEAN_TOKEN)",
    "device": "--device",
    "volume": "--volume",
    "region": "--region",
}


class Config(NamedTuple):
    token: str
    device: str
    volume: str
    region: str
    buffer: int = DEFAULT_BUFFER
    timestamps: bool = False
    api_url: str = DEFAULT_API_URL
    poll_interval: float = DEFAULT_POLL_INTERVAL
    poll_timeout: float = DEFAULT_POLL_TIMEOUT
    max_polls: int = DEFAULT_MAX_POLLS
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    def __repr__(self):
        shown = self._replace(token="***")
        fields = ", ".join(f"{k}={v!r}" for k, v in shown._asdict().items())
        return f"Config({fields})"


def parse_config_file(log, config_file: Optional[Path]):
    config = configparser.ConfigParser()
    if config_file:
        if config_file.is_file():
            log.debug(
                "parse-config-file",
                config_file=config_file,
            )
            config.read(config_file)
        else:
            log.warning(
                "parse-config-file-not-found",
                config_file=config_file,
            )

    return config


def _to_bool(value):
    if isinstance(value, bool):
        return value
    try:
        return configparser.ConfigParser.BOOLEAN_STATES[str(value).lower()]
    except KeyError:
        raise ValueError(f"not a boolean: {value}")


CONVERTERS = {
    "buffer": int,
    "timestamps": _to_bool,
    "poll_interval": float,
    "poll_timeout": float,
    "max_polls": int,
    "request_timeout": float,
}

MINIMUM = {
    "buffer": 1,
    "poll_interval": 0,
    "max_polls": 1,
}

# Zero would mean "no time at all" to stamina and requests.
POSITIVE = ("poll_timeout", "request_timeout")


def build_config(log, config_file: Optional[Path] = None, **options) -> Config:
    """Merges command line options with the config file.

    Options given as None fall back to the `[autoresize]` section of the
    config file and then to the defaults of `Config`.
    """
    parser = parse_config_file(log, config_file)
    section = (
        parser[CONFIG_SECTION] if parser.has_section(CONFIG_SECTION) else {}
    )

    values = {}
    for name in Config._fields:
        value = options.get(name)
        if value is None:
            value = section.get(name)
        if value is None or value == "":
            continue
        values[name] = value

    missing = [
        flag for name, flag in REQUIRED_OPTIONS.items() if name not in values
    ]
    if missing:
        raise ConfigurationError(
            "Missing required option(s): " + ", ".join(missing)
        )

    for name, convert in CONVERTERS.items():
        if name not in values:
            continue
        try:
            values[name] = convert(values[name])
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"Invalid value for {name}: {values[name]!r}"
            )
        if name in MINIMUM and values[name] < MINIMUM[name]:
            raise ConfigurationError(
                f"{name} must be at least {MINIMUM[name]}, "
                f"got {values[name]}"
            )
        if name in POSITIVE and values[name] <= 0:
            raise ConfigurationError(
                f"{name} must be greater than 0, got {values[name]}"
            )

    config = Config(**values)
    log.debug("config", config=repr(config))
    return config
