"""Define utility functions to simplify logging to the CLI."""

import logging

from rich.console import Console
from rich.logging import RichHandler

console = Console()


def configure_logging(level: int | str = logging.INFO) -> None:
    """Route log records from `robotics_planning` through a rich console handler.

    :param level: Minimum level of log records to be displayed (defaults to INFO)
    """
    package_logger = logging.getLogger("robotics_planning")
    package_logger.setLevel(level)

    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        package_logger.addHandler(RichHandler(console=console, show_path=False))
