"""
Load Gate - Readiness of incrementally rendered containers.

Items are assumed to be rendered in order, front first, so the usable
part of a container is the unbroken run of children that already have
text. A gap is never looked past.
"""

from typing import Any, Optional


class LoadGate:
    """
    Estimate how many leading children of a node are ready.

    Example:
        >>> gate = LoadGate()
        >>> n = gate.count_ready(container)
        >>> ready = container.children[:n]
    """

    def count_ready(self, node: Any) -> int:
        """
        Count the contiguous prefix of children with rendered text.

        Returns 0 when the node is absent or has no children yet.
        """
        if node is None:
            return 0
        children = getattr(node, "children", None) or ()
        ready = 0
        for child in children:
            if child is None or getattr(child, "text", None) is None:
                break
            ready += 1
        return ready

    def is_ready(self, node: Any) -> bool:
        """True when at least one leading child is ready."""
        return self.count_ready(node) > 0

    def find_marked_child(self, node: Any, marker: str) -> Optional[int]:
        """
        Index of the first child whose text contains ``marker``.

        Unlike path location this is a substring check: it picks the
        one child of a container that carries a known label.
        """
        if node is None:
            return None
        children = getattr(node, "children", None) or ()
        for index, child in enumerate(children):
            text = getattr(child, "text", None)
            if text is not None and marker in text:
                return index
        return None


def count_ready(node: Any) -> int:
    """Module-level shortcut for ``LoadGate().count_ready``."""
    return LoadGate().count_ready(node)
