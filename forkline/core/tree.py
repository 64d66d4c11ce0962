"""
Tree Model - Paths and partial resolution.

A tree is anything whose nodes expose ``children`` (ordered, may grow
between reads), ``text`` (rendered text or None) and ``markup``.
The engine only ever reads from it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

# Ordered child indices from a root to a node
Path = Tuple[int, ...]


@dataclass
class TreeNode:
    """
    In-memory tree node.

    Mirrors what the browser exposes through ``childNodes`` and
    ``innerText``: a container without rendered text has ``text=None``.

    Example:
        >>> root = TreeNode(children=[TreeNode(text="A"), TreeNode()])
        >>> resolve(root, (0,)).text
        'A'
    """
    text: Optional[str] = None
    children: List["TreeNode"] = field(default_factory=list)
    markup: str = ""

    def append(self, child: "TreeNode") -> "TreeNode":
        """Append a child and return it (handy for building test trees)."""
        self.children.append(child)
        return child

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the nested ``{t, c}`` shape used by DOM snapshots."""
        return {
            "t": self.text,
            "c": [child.to_dict() for child in self.children],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TreeNode":
        """Create from the nested ``{t, c}`` shape."""
        return cls(
            text=data.get("t"),
            children=[cls.from_dict(c) for c in data.get("c") or []],
            markup=data.get("h", ""),
        )


def as_path(indices: Iterable[int]) -> Path:
    """Normalize any iterable of indices into an immutable Path."""
    return tuple(int(i) for i in indices)


def parse_path(raw: str) -> Path:
    """
    Parse a comma separated path such as ``"2,0,1"``.

    Brackets and whitespace are tolerated so JSON style ``[2, 0, 1]``
    works too. An empty string is the empty path.
    """
    cleaned = raw.strip().strip("[]").strip()
    if not cleaned:
        return ()
    path = tuple(int(part) for part in cleaned.split(","))
    if any(i < 0 for i in path):
        raise ValueError(f"Path indices must be non-negative: {raw!r}")
    return path


def child_at(node: Any, index: int) -> Optional[Any]:
    """Return ``node.children[index]`` or None when out of range."""
    if node is None or index < 0:
        return None
    children: Sequence[Any] = getattr(node, "children", None) or ()
    if index >= len(children):
        return None
    return children[index]


def resolve(root: Any, path: Sequence[int]) -> Optional[Any]:
    """
    Follow ``path`` from ``root``.

    Stops and returns None the moment an index is out of range or a
    node along the way is absent. The empty path resolves to root.
    """
    node = root
    for index in path:
        node = child_at(node, index)
        if node is None:
            return None
    return node
