"""
Report - Text presentation helpers for scan trees.

Pure functions over ``ScanNode``; nothing here touches the filesystem.
"""

from typing import List, Optional

from .models import ScanNode


SIZE_UNITS = ["B", "KB", "MB", "GB", "TB", "PB"]

SORT_KEYS = {
    "size": lambda node: node.size,
    "name": lambda node: node.name.casefold(),
    "kind": lambda node: node.kind.value,
}


def format_bytes(size: int) -> str:
    """
    Human-readable size using 1024-based units.

    >>> format_bytes(512)
    '512 B'
    >>> format_bytes(1536)
    '1.50 KB'
    >>> format_bytes(20 * 1024 ** 3)
    '20.0 GB'
    """
    size = max(0, size)
    if size < 1024:
        return f"{size} B"

    exp = 0
    while exp < len(SIZE_UNITS) - 1 and size >= 1024 ** (exp + 1):
        exp += 1

    value = size / 1024 ** exp
    decimals = 1 if value >= 10 else 2
    return f"{value:.{decimals}f} {SIZE_UNITS[exp]}"


def percent_of(node: ScanNode, parent: ScanNode) -> float:
    """Share of ``parent``'s reported size taken by ``node``."""
    return node.size / max(1, parent.size) * 100


def sort_children(
    node: ScanNode,
    field: str = "size",
    descending: bool = True,
) -> List[ScanNode]:
    """Return ``node``'s children re-ordered for display (the node is untouched)."""
    if field not in SORT_KEYS:
        raise ValueError(f"Unknown sort field: {field!r} (expected one of {sorted(SORT_KEYS)})")
    if not node.is_expanded:
        return []
    return sorted(node.children, key=SORT_KEYS[field], reverse=descending)


def render_tree(
    node: ScanNode,
    max_depth: Optional[int] = None,
    indent: str = "  ",
    sort_by: Optional[str] = None,
) -> List[str]:
    """
    Render a tree as text lines: size, share of parent, name.

    Children keep scan order (largest first) unless ``sort_by`` names one
    of ``SORT_KEYS``; size sorts descend, name and kind sorts ascend.

    Directories get a trailing ``/``. Children dropped by the width budget
    show up as a single ``… N more`` line.
    """
    lines: List[str] = []

    def walk(current: ScanNode, parent: Optional[ScanNode], level: int):
        pct = percent_of(current, parent) if parent else 100.0
        suffix = "/" if current.is_dir else ""
        lines.append(
            f"{format_bytes(current.size):>10}  {pct:5.1f}%  "
            f"{indent * level}{current.name}{suffix}"
        )

        if max_depth is not None and level >= max_depth:
            return

        if sort_by is None:
            children = current.children or []
        else:
            children = sort_children(current, sort_by, descending=sort_by == "size")

        for child in children:
            walk(child, current, level + 1)

        if current.omitted_children:
            lines.append(f"{'':>10}  {'':>6}  {indent * (level + 1)}… {current.omitted_children} more")

    walk(node, None, 0)
    return lines
