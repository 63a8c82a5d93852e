"""Helpers for dealing with subprocesses"""


def stream_popen_output(popen, log, log_event):
    """Reads stdout line-by-line from a Popen object until the stream ends
    and returns a list of all received non-blank lines.
    Every non-blank line is logged as it appears.

    WARNING: stderr must be merged into stdout (stderr=STDOUT) or discarded.
    A command writing a lot to a separate stderr pipe may deadlock when the
    OS pipe buffer fills up.
    """
    lines = []
    line = popen.stdout.readline()
    while line:
        line = line.rstrip("\n")
        if line.strip():
            log.info(log_event, cmd_output_line=line)
            lines.append(line)
        line = popen.stdout.readline()

    return lines
