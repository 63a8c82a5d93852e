import os

import autoresize.logging
import structlog
import typer


class ResizeTyperApp(typer.Typer):
    def __init__(self, command_name):
        # Showing local variables would leak the API token.
        super().__init__(pretty_exceptions_show_locals=False)
        self.command_name = command_name

    def __call__(self):
        try:
            super().__call__()
        except Exception as e:
            if autoresize.logging.logging_initialized():
                try:
                    log = structlog.get_logger()
                    log.error(
                        "unhandled-exception",
                        exc_info=True,
                        command=self.command_name,
                    )
                except Exception:
                    # Raise the original exception when logging fails.
                    print("WARNING: logging an unhandled exception failed.")
                    raise e
            else:
                # Raise the original exception when our logging is not
                # initialized.
                print(
                    "WARNING: could not log an unhandled exception because "
                    "structured logging has not been initialized."
                )
                raise e

            # Interactive use gets typer's pretty-printed traceback. In a
            # systemd unit the logged traceback is enough.
            if not os.environ.get("INVOCATION_ID"):
                raise e
            raise SystemExit(1)
