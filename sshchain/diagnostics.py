"""
Diagnostic Sinks

Insecure choices (password authentication, skipped host key verification)
must be reported at the moment they are made. Components that make those
choices receive a sink explicitly instead of reaching for a global logger,
so they can be exercised without any logging backend.

Available Sinks:
- LoggingDiagnosticSink: Forwards to the "sshchain.audit" logger (default)
- RecordingDiagnosticSink: Keeps messages in memory

Usage:
    sink = RecordingDiagnosticSink()
    resolve_auth_method(spec, sink)
    assert len(sink.warnings) == 2
"""

import logging
import threading
from typing import List, Optional, Protocol, runtime_checkable

audit_logger = logging.getLogger("sshchain.audit")


@runtime_checkable
class DiagnosticSink(Protocol):
    """Anything that accepts security warnings."""

    def warning(self, message: str) -> None:
        ...


class LoggingDiagnosticSink:
    """
    Sink that writes every warning to a logger.

    Args:
        logger: Target logger, defaults to "sshchain.audit"
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or audit_logger

    def warning(self, message: str) -> None:
        self.logger.warning("SSH_SECURITY_WARNING: %s", message)


class RecordingDiagnosticSink:
    """Sink that records warnings in order. Safe to share between threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._warnings: List[str] = []

    def warning(self, message: str) -> None:
        with self._lock:
            self._warnings.append(message)

    @property
    def warnings(self) -> List[str]:
        with self._lock:
            return list(self._warnings)

    def clear(self) -> None:
        with self._lock:
            self._warnings.clear()


def default_sink() -> DiagnosticSink:
    return LoggingDiagnosticSink()


__all__ = [
    "DiagnosticSink",
    "LoggingDiagnosticSink",
    "RecordingDiagnosticSink",
    "default_sink",
]
