"""
captioncut.logging - Diagnostic logging setup.

Stage output meant for the operator goes through a rich Console; this
module only configures the ``captioncut`` logger tree, which stays quiet
unless --verbose is given.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

logger = logging.getLogger("captioncut")

NOISY_LOGGERS = ("LiteLLM", "httpx", "httpcore")


def configure_logging(verbose: bool = False) -> None:
    """Route log records to stderr through rich.

    Args:
        verbose: DEBUG level for captioncut when True, WARNING otherwise
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
