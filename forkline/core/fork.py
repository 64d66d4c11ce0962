"""
Fork Splitter - Reconcile two sibling paths into one anchor.

Two equal-length paths that lead to same-shaped items share an
ancestor container. The first index where they differ is the fork;
everything before it is the upper path (the container), everything
after it is a lower offset template that applies to every sibling.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Union
import logging

from forkline.core.tree import Path, as_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ForkResult:
    """
    Result of splitting two paths at their fork index.

    ``lower_offsets`` is path1's suffix after the fork. path2's suffix is
    kept as ``sibling_offsets`` so callers can check ``suffixes_agree``
    instead of silently assuming both items are shaped the same.
    """
    upper_path: Path
    lower_offsets: Path = ()
    fork_index: Optional[int] = None
    sibling_offsets: Path = ()

    @property
    def suffixes_agree(self) -> bool:
        """True when both paths carry the same suffix below the fork."""
        return self.lower_offsets == self.sibling_offsets

    def item_path(self, index: int, include_offsets: bool = True) -> Path:
        """Path to the ``index``-th sibling item under the upper path."""
        if include_offsets:
            return self.upper_path + (index,) + self.lower_offsets
        return self.upper_path + (index,)

    def describe(self, root_expr: str = "document.body") -> str:
        """Render the upper path as a DOM expression (debug convenience)."""
        return root_expr + "".join(f".childNodes[{i}]" for i in self.upper_path)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "upper_path": list(self.upper_path),
            "lower_offsets": list(self.lower_offsets),
            "fork_index": self.fork_index,
            "sibling_offsets": list(self.sibling_offsets),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ForkResult":
        """Create from dictionary."""
        return cls(
            upper_path=as_path(data.get("upper_path", [])),
            lower_offsets=as_path(data.get("lower_offsets", [])),
            fork_index=data.get("fork_index"),
            sibling_offsets=as_path(data.get("sibling_offsets", [])),
        )

    @classmethod
    def anchor(cls, upper_path: Sequence[int]) -> "ForkResult":
        """Wrap a bare container path as a fork result with no offsets."""
        return cls(upper_path=as_path(upper_path))


@dataclass(frozen=True)
class Incompatible:
    """Paths of different depth have no simple fork."""
    len1: int
    len2: int

    def __str__(self) -> str:
        return f"Incompatible paths: lengths {self.len1} and {self.len2} differ"


def find_fork_index(path1: Sequence[int], path2: Sequence[int]) -> Optional[int]:
    """First position where the two paths differ, or None."""
    for i, (a, b) in enumerate(zip(path1, path2)):
        if a != b:
            return i
    return None


def split(path1: Sequence[int], path2: Sequence[int]) -> Union[ForkResult, Incompatible]:
    """
    Split two equal-length paths at their fork index.

    The index value at the fork position belongs to neither part; it is
    what tells the two items apart.

    Example:
        >>> split((2, 0, 1), (2, 0, 3))
        ForkResult(upper_path=(2, 0), lower_offsets=(), fork_index=2, sibling_offsets=())
    """
    p1, p2 = as_path(path1), as_path(path2)
    if len(p1) != len(p2):
        logger.debug(f"Cannot split {p1} and {p2}: depth differs")
        return Incompatible(len(p1), len(p2))

    fork_index = find_fork_index(p1, p2)
    if fork_index is None:
        return ForkResult(upper_path=p1)

    return ForkResult(
        upper_path=p1[:fork_index],
        lower_offsets=p1[fork_index + 1:],
        fork_index=fork_index,
        sibling_offsets=p2[fork_index + 1:],
    )
