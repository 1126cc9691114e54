"""txflow Logging — hexagonal logging port and adapters."""

from txflow.logging.port import LoggingPort
from txflow.logging.structlog_adapter import StructlogAdapter

__all__ = ["LoggingPort", "StructlogAdapter"]
