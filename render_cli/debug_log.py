"""Debug logging — writes to $RENDER_CLI_LOG (default <tmpdir>/render-cli.log).

The TUI owns the terminal, so nothing is ever logged to stdout/stderr.
"""

from __future__ import annotations

import logging
import os
import tempfile

LOGGER_NAME = "render-cli"

_log = logging.getLogger(LOGGER_NAME)


def log_path() -> str:
    return os.environ.get("RENDER_CLI_LOG") or os.path.join(
        tempfile.gettempdir(), "render-cli.log"
    )


def configure_logging(debug: bool = False) -> logging.Logger:
    """Attach the file handler once and set the level for this run."""
    _log.setLevel(logging.DEBUG if debug else logging.INFO)
    _log.propagate = False
    if not _log.handlers:
        try:
            fh = logging.FileHandler(log_path())
        except OSError:
            # read-only tmpdir
            _log.addHandler(logging.NullHandler())
            return _log
        fh.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        ))
        _log.addHandler(fh)
    return _log
