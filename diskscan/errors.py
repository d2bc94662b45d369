"""
Error Handling - Error taxonomy, logging policies and per-scan collection.

Only three failures ever reach a caller: a missing root (``start_scan``),
an unknown scan id (``cancel_scan``) and cancellation observed inside the
engine. Everything that goes wrong while reading the filesystem is turned
into an error record string, logged according to ``ERROR_POLICIES`` and
appended to the scan's ``ErrorCollector``.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union


logger = logging.getLogger(__name__)


@dataclass
class ErrorPolicy:
    """How loudly to log a specific error type."""
    log_level: int
    message_template: str = "{file}: {error}"


# Error type to policy mapping (first isinstance match wins)
ERROR_POLICIES: dict[type, ErrorPolicy] = {
    PermissionError: ErrorPolicy(
        log_level=logging.WARNING,
        message_template="Permission denied: {file}"
    ),
    FileNotFoundError: ErrorPolicy(
        log_level=logging.DEBUG,
        message_template="Entry vanished during scan: {file}"
    ),
    NotADirectoryError: ErrorPolicy(
        log_level=logging.DEBUG,
        message_template="Entry stopped being a directory: {file}"
    ),
    OSError: ErrorPolicy(
        log_level=logging.WARNING,
        message_template="OS error reading entry: {file} - {error}"
    ),
}


class ScanError(Exception):
    """Base exception for scan errors."""
    pass


class RootNotFoundError(ScanError, FileNotFoundError):
    """Requested scan root does not exist."""
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__(f"Path does not exist: {path}")


class UnknownScanIdError(ScanError, KeyError):
    """Scan id is not registered (never existed or already finished)."""
    def __init__(self, scan_id: str):
        self.scan_id = scan_id
        super().__init__(scan_id)

    def __str__(self) -> str:
        return f"Scan not found: {self.scan_id}"


class ScanCancelled(ScanError):
    """Cancellation observed at a recursion entry point."""
    def __init__(self):
        super().__init__("cancelled")


def describe_cause(error: BaseException) -> str:
    """Short cause text for an error record (``strerror`` for OS errors)."""
    if isinstance(error, OSError) and error.strerror:
        return error.strerror
    return str(error)


def handle_error(
    error: Exception,
    file_path: Optional[Path] = None,
    context: str = ""
) -> str:
    """
    Log an I/O error according to the defined policies.

    Args:
        error: The exception that occurred
        file_path: Entry being processed when it happened
        context: Additional context for logging

    Returns:
        The error record ``"<path>: <cause>"`` to store for the scan
    """
    policy = None
    for error_type, p in ERROR_POLICIES.items():
        if isinstance(error, error_type):
            policy = p
            break

    if policy is None:
        policy = ErrorPolicy(
            log_level=logging.ERROR,
            message_template="Unexpected error: {file} - {error}"
        )

    file_str = str(file_path) if file_path else "<unknown>"
    message = policy.message_template.format(file=file_str, error=str(error))
    if context:
        message = f"[{context}] {message}"

    logger.log(policy.log_level, message)

    return f"{file_str}: {describe_cause(error)}"


class ErrorCollector:
    """
    Append-only, order-of-arrival list of error records for one scan.

    Appends may come from the event loop and from worker threads at once.
    Records are never deduplicated or dropped.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._errors: List[str] = []

    def append(self, record: str) -> None:
        with self._lock:
            self._errors.append(record)

    def snapshot(self) -> List[str]:
        """Copy of all records collected so far."""
        with self._lock:
            return list(self._errors)

    def __len__(self) -> int:
        with self._lock:
            return len(self._errors)
