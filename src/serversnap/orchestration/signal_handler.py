"""
Signal handling for the orchestration module.

Routes SIGINT and SIGTERM to a shutdown callback while a run is active and
restores the previous handlers afterwards.
"""

import logging
import signal
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SignalHandler:
    """
    Manages signal registration and cleanup for one run.

    The first signal calls ``on_shutdown``; repeated signals only log, so a
    second Ctrl-C does not interrupt report rendering.
    """

    def __init__(self, on_shutdown: Callable[[], None]):
        self.on_shutdown = on_shutdown
        self.shutdown_requested = False
        self._original_handlers: Dict[int, Any] = {}

    def setup_signal_handlers(self) -> None:
        """Install the handlers, remembering the ones they replace."""
        try:
            for signum in HANDLED_SIGNALS:
                self._original_handlers[signum] = signal.signal(signum, self._handle_signal)
            logger.debug("Signal handlers installed")
        except (ValueError, OSError) as e:
            # signal.signal only works from the main thread
            logger.warning(f"Failed to set up signal handlers: {e}")

    def cleanup_signal_handlers(self) -> None:
        """Restore the original signal handlers."""
        if not self._original_handlers:
            return
        try:
            for signum, handler in self._original_handlers.items():
                if handler is not None:
                    signal.signal(signum, handler)
            logger.debug("Signal handlers restored")
        except (ValueError, OSError) as e:
            logger.warning(f"Failed to restore signal handlers: {e}")
        finally:
            self._original_handlers.clear()

    def _handle_signal(self, signum: int, frame: Optional[Any]) -> None:
        if self.shutdown_requested:
            logger.warning("Shutdown already in progress. Please be patient.")
            return
        logger.warning(f"Signal {signal.strsignal(signum)} received. Stopping the run and writing a partial report...")
        self.shutdown_requested = True
        self.on_shutdown()

    def __enter__(self) -> "SignalHandler":
        self.setup_signal_handlers()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup_signal_handlers()
