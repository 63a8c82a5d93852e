"""Grows a DigitalOcean volume and its filesystem when free space runs low.

Meant to be run periodically as root, for example from a systemd timer.
"""

from pathlib import Path
from typing import Optional

import rich
import structlog
import typer
from autoresize.config import DEFAULT_BUFFER, DEFAULT_CONFIG_FILE, build_config
from autoresize.disk import DiskSpace, Filesystem
from autoresize.errors import (
    ConfigurationError,
    HostEnvironmentError,
    ResizeError,
)
from autoresize.logging import init_logging
from autoresize.resize import Resizer, check_environment
from autoresize.typer_utils import ResizeTyperApp
from autoresize.volumes import VolumeAPI
from typer import Exit, Option

app = ResizeTyperApp("do-volume-autoresize")


def _error(message):
    rich.print(f"[bold red]Error:[/bold red] {message}")


@app.command()
def autoresize(
    ctx: typer.Context,
    token: Optional[str] = Option(
        None,
        envvar="DIGITALOCEAN_TOKEN",
        show_envvar=True,
        help="API token with write access to volumes.",
    ),
    device: Optional[str] = Option(
        None,
        "--device",
        "-d",
        help="Mounted block device or mountpoint to watch, e.g. /mnt/data.",
    ),
    volume: Optional[str] = Option(
        None, "--volume", "-n", help="Name of the volume backing the device."
    ),
    region: Optional[str] = Option(
        None, "--region", "-r", help="Region of the volume, e.g. fra1."
    ),
    buffer: Optional[int] = Option(
        None,
        "--buffer",
        "-b",
        help=(
            "Free space to keep in GB. The volume grows by this amount "
            f"when less is free. [default: {DEFAULT_BUFFER}]"
        ),
    ),
    timestamps: bool = Option(
        False, "--timestamps", "-t", help="Prefix log lines with timestamps."
    ),
    verbose: bool = Option(
        False,
        "--verbose",
        "-v",
        help=(
            "Show debug logging output. By default, only info and higher "
            "levels are shown."
        ),
    ),
    config_file: Path = Option(
        DEFAULT_CONFIG_FILE,
        dir_okay=False,
        help="INI file with an [autoresize] section providing defaults.",
    ),
    logdir: Optional[Path] = Option(
        None,
        exists=True,
        file_okay=False,
        writable=True,
        help="Also write a log file to this directory.",
    ),
    api_url: Optional[str] = Option(None, help="Base URL of the API."),
    poll_interval: Optional[float] = Option(
        None, help="Seconds between resize status checks. [default: 1]"
    ),
    poll_timeout: Optional[float] = Option(
        None, help="Give up waiting for the resize after so many seconds."
    ),
    max_polls: Optional[int] = Option(
        None, help="Give up waiting for the resize after so many checks."
    ),
):
    """Grows the volume by BUFFER GB if less than BUFFER GB are free."""
    init_logging(verbose, timestamps, logdir)
    log = structlog.get_logger()

    try:
        config = build_config(
            log,
            config_file,
            token=token,
            device=device,
            volume=volume,
            region=region,
            buffer=buffer,
            timestamps=timestamps or None,
            api_url=api_url,
            poll_interval=poll_interval,
            poll_timeout=poll_timeout,
            max_polls=max_polls,
        )
    except ConfigurationError as e:
        typer.echo(ctx.get_usage())
        typer.echo(f"Try '{ctx.command_path} --help' for help.\n")
        _error(e.msg)
        raise Exit(1)

    if config.timestamps and not timestamps:
        init_logging(verbose, True, logdir)

    try:
        check_environment(log=log)
    except HostEnvironmentError as e:
        _error(e.msg)
        raise Exit(1)

    log.info(
        "autoresize-start",
        device=config.device,
        volume=config.volume,
        region=config.region,
        buffer=config.buffer,
    )

    api = VolumeAPI(
        config.token, config.api_url, config.request_timeout, log=log
    )
    resizer = Resizer(config, DiskSpace(log), Filesystem(log), api, log=log)

    try:
        resizer.run()
    except ResizeError as e:
        log.error(
            "resize-failed",
            _replace_msg="Resize failed while {state}: {reason}",
            state=resizer.state.value if resizer.state else None,
            reason=e.msg,
            error=e.__class__.__name__,
        )
        raise Exit(1)
    except KeyboardInterrupt:
        log.error(
            "resize-interrupted",
            _replace_msg=(
                "Interrupted while {state}. The volume resize may still be "
                "running, run again later."
            ),
            state=resizer.state.value if resizer.state else None,
        )
        raise Exit(1)
