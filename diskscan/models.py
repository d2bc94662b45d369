"""
Data Models - Type definitions for scan results and emitted events.

``to_dict`` produces the wire shape consumed by presentation layers:
optional fields are left out entirely rather than sent as null.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Union


# Sizes travel as unsigned 64-bit integers
U64_MAX = 2 ** 64 - 1


def saturating_add(a: int, b: int) -> int:
    """Add two sizes, clamping at the largest uint64."""
    return min(a + b, U64_MAX)


def display_name(path: Union[str, Path]) -> str:
    """Final path segment, or the full path when there is none (e.g. ``/``)."""
    path = Path(path)
    return path.name or str(path)


class NodeKind(str, Enum):
    """Kind of tree node."""
    FILE = "file"
    DIR = "dir"


@dataclass
class ScanNode:
    """
    One entry of a scan result tree.

    ``children`` is None for files and for directories collapsed by the
    depth budget. ``omitted_children`` is set only when the width budget
    dropped entries.
    """
    name: str
    path: str
    kind: NodeKind
    size: int
    children: Optional[List["ScanNode"]] = None
    omitted_children: Optional[int] = None

    @classmethod
    def file(cls, path: Path, size: int) -> "ScanNode":
        return cls(
            name=display_name(path),
            path=str(path),
            kind=NodeKind.FILE,
            size=size,
        )

    @classmethod
    def directory(
        cls,
        path: Path,
        size: int,
        children: Optional[List["ScanNode"]] = None,
        omitted_children: Optional[int] = None,
    ) -> "ScanNode":
        return cls(
            name=display_name(path),
            path=str(path),
            kind=NodeKind.DIR,
            size=size,
            children=children,
            omitted_children=omitted_children or None,
        )

    @classmethod
    def placeholder(cls, path: Path, size: int = 0) -> "ScanNode":
        """Best-effort stand-in for an entry that could not be scanned."""
        return cls.directory(path, size, children=[])

    @property
    def is_dir(self) -> bool:
        return self.kind == NodeKind.DIR

    @property
    def is_expanded(self) -> bool:
        """True for directories whose children were enumerated."""
        return self.children is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "path": self.path,
            "kind": self.kind.value,
            "size": self.size,
        }
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        if self.omitted_children is not None:
            data["omitted_children"] = self.omitted_children
        return data


@dataclass
class ProgressEvent:
    """Throttled snapshot of a scan's running counters."""
    event_name: ClassVar[str] = "scan_progress"

    scan_id: str
    scanned_entries: int
    scanned_bytes: int
    current_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "scan_id": self.scan_id,
            "scanned_entries": self.scanned_entries,
            "scanned_bytes": self.scanned_bytes,
        }
        if self.current_path is not None:
            data["current_path"] = self.current_path
        return data


@dataclass
class DoneEvent:
    """Terminal event of a scan: the final tree and every recorded error."""
    event_name: ClassVar[str] = "scan_done"

    scan_id: str
    root: ScanNode
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scan_id": self.scan_id,
            "root": self.root.to_dict(),
            "errors": list(self.errors),
        }


ScanEvent = Union[ProgressEvent, DoneEvent]
