# ABOUTME: ProgressSink protocol for observing long-running conversions.
# ABOUTME: Sinks only observe; stopping a conversion goes through a separate cancel check.

import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class ProgressSink(Protocol):
    """Receives human-readable status messages and a (done, total) counter."""

    def on_message(self, text: str) -> None: ...

    def on_progress(self, done: int, total: int) -> None: ...


class NullProgress:
    """A sink that discards everything."""

    def on_message(self, text: str) -> None:
        pass

    def on_progress(self, done: int, total: int) -> None:
        pass


class LoggingProgress:
    """A sink that forwards messages to a logger at INFO level."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def on_message(self, text: str) -> None:
        self._log.info("%s", text)

    def on_progress(self, done: int, total: int) -> None:
        self._log.debug("progress %d/%d", done, total)
