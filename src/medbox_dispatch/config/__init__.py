"""Runtime configuration and logging setup."""

from .logging import configure_logging
from .settings import DispatchSettings

__all__ = ["DispatchSettings", "configure_logging"]
