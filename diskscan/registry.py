"""
Registry - Owns the scan id to cancellation token mapping.

One entry per in-flight scan: created when the scan is accepted, removed
by the scan's own worker right after its completion event goes out.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, List

from .cancellation import CancellationToken
from .errors import UnknownScanIdError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanHandle:
    """Scan id plus the token its worker observes."""
    scan_id: str
    token: CancellationToken = field(default_factory=CancellationToken)


class ScanRegistry:
    """
    Thread-safe map of active scans.

    Every operation is O(1) and rare compared to scan work, so a single
    lock around the dict is enough.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._scans: Dict[str, CancellationToken] = {}

    def create(self) -> ScanHandle:
        """Register a new scan with a fresh id and a not-cancelled token."""
        handle = ScanHandle(scan_id=str(uuid.uuid4()))
        with self._lock:
            self._scans[handle.scan_id] = handle.token
        return handle

    def cancel(self, scan_id: str) -> None:
        """
        Request cancellation of an active scan.

        Raises:
            UnknownScanIdError: if the id is not registered
        """
        with self._lock:
            token = self._scans.get(scan_id)
            if token is None:
                raise UnknownScanIdError(scan_id)
            token.cancel()
        logger.info(f"Cancellation requested for scan {scan_id}")

    def remove(self, scan_id: str) -> None:
        """Drop a finished scan. No-op if it is already gone."""
        with self._lock:
            self._scans.pop(scan_id, None)

    def active_ids(self) -> List[str]:
        with self._lock:
            return list(self._scans)

    def __contains__(self, scan_id: str) -> bool:
        with self._lock:
            return scan_id in self._scans

    def __len__(self) -> int:
        with self._lock:
            return len(self._scans)
