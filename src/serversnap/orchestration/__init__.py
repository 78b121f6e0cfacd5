"""
Orchestration of a diagnostic run.

- Orchestrator: drives probes, collectors, aggregation and rendering
- LogManager: the per-run ``run.log`` file
- SignalHandler: routes SIGINT/SIGTERM to a graceful shutdown
"""

from .log_manager import LogManager
from .orchestrator import CANCELLED_REASON, Orchestrator
from .signal_handler import SignalHandler

__all__ = [
    "Orchestrator",
    "LogManager",
    "SignalHandler",
    "CANCELLED_REASON",
]
