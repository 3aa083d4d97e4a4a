"""Logging configuration for dotty.

Console output goes through rich; an optional log file receives plain,
timestamped records at debug level. Watch and schedule loops run for a long
time, so ``--log-file`` is the usual way to keep a record of their passes.

Example:
    ```python
    from dotty.core.logging import setup_logging

    setup_logging(debug=True, log_file="~/.local/state/dotty/dotty.log")
    ```
"""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)


def setup_logging(
    debug: bool = False,
    log_file: Optional[str] = None,
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
) -> None:
    """Set up logging for the dotty process.

    Args:
        debug: Whether to enable debug logging on the console (default: False).
        log_file: Optional path to a log file; ``~`` is expanded and parent
                 directories are created.
        log_format: Format string for the file handler.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)
    root_logger.handlers.clear()

    console_handler = RichHandler(
        console=console,
        show_path=debug,
        enable_link_path=debug,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=debug,
    )
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)  # Always log debug to file
        file_handler.setFormatter(logging.Formatter(log_format))
        root_logger.addHandler(file_handler)
        root_logger.setLevel(logging.DEBUG)

    logger = logging.getLogger(__name__)
    logger.debug("Logging initialized (debug=%s)", debug)
    if log_file:
        logger.debug("Log file: %s", log_file)

    # watchdog is chatty at debug level
    logging.getLogger("watchdog").setLevel(logging.WARNING)
