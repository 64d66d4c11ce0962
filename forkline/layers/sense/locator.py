"""
Path Locator - Text-based node discovery.

Walks a tree depth-first and records the child-index path of the
first node whose rendered text equals a target string. The resulting
path can be replayed later without searching again.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from forkline.core.tree import Path

logger = logging.getLogger(__name__)


class PathLocator:
    """
    Find nodes by exact rendered text.

    Search order is pre-order and index-ascending: a node's own text is
    checked before its children, and earlier siblings before later ones.
    The root is the search origin and is never matched itself.

    Example:
        >>> locator = PathLocator()
        >>> path = locator.locate(root, "used when meeting someone:")
        >>> if path is not None:
        ...     print(list(path))
    """

    def locate(self, root: Any, target_text: str) -> Optional[Path]:
        """
        Locate the first node whose text equals ``target_text``.

        Returns:
            The index path from root, or None when nothing matches
        """
        return self.locate_all(root, [target_text])[0]

    def locate_first(
        self,
        root: Any,
        texts: Sequence[str],
    ) -> Optional[Tuple[Optional[Path], Optional[Path]]]:
        """
        Locate two targets in a single pass.

        Each slot is independent; either may be None. Returns None
        only when neither text matched anywhere.
        """
        if len(texts) != 2:
            raise ValueError(f"locate_first expects exactly two texts, got {len(texts)}")
        first, second = self.locate_all(root, texts)
        if first is None and second is None:
            return None
        return first, second

    def locate_all(self, root: Any, texts: Sequence[str]) -> List[Optional[Path]]:
        """
        Locate every target text in one depth-first pass.

        A node matching a pending target is recorded and not descended
        into; any other node is descended into, text or not.
        """
        found: Dict[int, Path] = {}
        pending = {i for i in range(len(texts))}
        if not pending or root is None:
            return [None] * len(texts)

        # Explicit stack of (node, path); pushed in reverse so index 0 pops first
        stack: List[Tuple[Any, Path]] = []
        self._push_children(stack, root, ())

        while stack and pending:
            node, path = stack.pop()
            text = getattr(node, "text", None)

            matched = False
            if text is not None:
                for i in sorted(pending):
                    if text == texts[i]:
                        found[i] = path
                        matched = True
                pending.difference_update(found)

            if not matched:
                self._push_children(stack, node, path)

        for i, text in enumerate(texts):
            if i in found:
                logger.debug(f"Located {text!r} at {list(found[i])}")
            else:
                logger.debug(f"No node with text {text!r}")

        return [found.get(i) for i in range(len(texts))]

    @staticmethod
    def _push_children(stack: List[Tuple[Any, Path]], node: Any, path: Path) -> None:
        children = getattr(node, "children", None) or ()
        for index in range(len(children) - 1, -1, -1):
            child = children[index]
            if child is not None:
                stack.append((child, path + (index,)))


def locate(root: Any, target_text: str) -> Optional[Path]:
    """Module-level shortcut for ``PathLocator().locate``."""
    return PathLocator().locate(root, target_text)


def locate_first(root: Any, texts: Sequence[str]) -> Optional[Tuple[Optional[Path], Optional[Path]]]:
    """Module-level shortcut for ``PathLocator().locate_first``."""
    return PathLocator().locate_first(root, texts)
