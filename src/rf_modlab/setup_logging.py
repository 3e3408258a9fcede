"""Logging configuration for the rf_modlab package."""

import coloredlogs


def setup_logging(level: str = "INFO") -> None:
  """Configure the root logger with a short, colored format.

  Should be called once at the entry point of the application.

  Args:
    level: Logging level (e.g., "INFO", "DEBUG", "WARNING").
  """
  coloredlogs.install(
    level=level,
    fmt="%(asctime)s | %(levelname)-8s | %(module)s | %(message)s",
    datefmt="%H:%M:%S",
    is_system_wide=True,
  )
