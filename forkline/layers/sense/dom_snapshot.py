"""
DOM Snapshot - Read the live browser tree.

Serializes ``document.body`` and its ``childNodes`` into nested
``{t, c}`` objects in a single JS pass, so the engine can walk a
consistent tree without a browser round-trip per node. Every call
re-reads the page; nothing is cached across polling ticks.

``subtree`` reads one node and its item level the same way, adding
``innerHTML`` (``h``) for the items so an item's text and markup always
come from the same read.
"""

from typing import Any, List, Optional, Sequence, TYPE_CHECKING
import logging

from forkline.core.tree import Path, as_path

if TYPE_CHECKING:
    from selenium.webdriver.remote.webdriver import WebDriver

logger = logging.getLogger(__name__)


class SnapshotNode:
    """
    One node of a DOM snapshot.

    ``text`` is the element's ``innerText`` (None for text and comment
    nodes, like ``childNodes[i].innerText`` in the page). ``markup`` is
    only filled in for the item level of a ``subtree`` read.
    """

    __slots__ = ("text", "children", "path", "markup")

    def __init__(
        self,
        text: Optional[str],
        children: List["SnapshotNode"],
        path: Path,
        markup: Optional[str] = None,
    ):
        self.text = text
        self.children = children
        self.path = path
        self.markup = markup or ""

    def __repr__(self) -> str:
        text = (self.text or "")[:20]
        return f"SnapshotNode(path={list(self.path)}, text={text!r}, children={len(self.children)})"


class BrowserTree:
    """
    Tree provider backed by a Selenium WebDriver.

    Calling the instance returns a fresh snapshot of ``document.body``,
    which makes it usable directly as a polling tree provider.

    Example:
        >>> tree = BrowserTree(driver)
        >>> root = tree.snapshot()
        >>> path = PathLocator().locate(root, "Latest")
    """

    def __init__(self, driver: "WebDriver", max_depth: int = 64):
        """
        Initialize the browser tree.

        Args:
            driver: Selenium WebDriver with a page loaded
            max_depth: Deepest level serialized; deeper nodes appear childless
        """
        self.driver = driver
        self.max_depth = max_depth

    def __call__(self) -> SnapshotNode:
        return self.snapshot()

    def snapshot(self) -> SnapshotNode:
        """Serialize the current ``document.body`` into SnapshotNodes."""
        raw = self.driver.execute_script(self._get_snapshot_script(), self.max_depth)
        if not raw:
            return SnapshotNode(None, [], ())
        truncated: List[Path] = []
        root = self._build(raw, (), truncated)
        if truncated:
            logger.debug(
                f"Snapshot cut {len(truncated)} node(s) at depth {self.max_depth}, "
                f"first at {list(truncated[0])}"
            )
        return root

    def subtree(self, path: Sequence[int], depth: int = 1) -> Optional[SnapshotNode]:
        """
        Read the node at ``path`` down to ``depth`` levels in one pass.

        Nodes at the last level carry their ``innerHTML`` as ``markup``,
        read together with their ``innerText``.

        Returns:
            The node, or None while ``path`` does not resolve
        """
        base = as_path(path)
        raw = self.driver.execute_script(self._get_subtree_script(), list(base), depth)
        if not raw:
            return None
        return self._build(raw, base, [])

    def _build(self, raw: Any, path: Path, truncated: List[Path]) -> SnapshotNode:
        if raw.get("x"):
            truncated.append(path)
        children = [
            self._build(child, path + (index,), truncated)
            for index, child in enumerate(raw.get("c") or [])
        ]
        return SnapshotNode(raw.get("t"), children, path, raw.get("h"))

    def scroll_to(self, path: Sequence[int]) -> bool:
        """Scroll the node at ``path`` into view. False when unresolvable."""
        script = self._get_follow_script() + """
        const node = follow(arguments[0]);
        if (!node || !node.scrollIntoView) return false;
        node.scrollIntoView();
        return true;
        """
        scrolled = bool(self.driver.execute_script(script, list(as_path(path))))
        if not scrolled:
            logger.debug(f"Nothing to scroll to at {list(path)}")
        return scrolled

    def body_text(self) -> str:
        """``document.body.innerText`` (empty while the body is missing)."""
        return self.driver.execute_script(
            "return document.body ? document.body.innerText : '';"
        ) or ""

    def _get_follow_script(self) -> str:
        """JS helper resolving a path, stopping at the first missing index."""
        return r"""
        const follow = (path) => {
            let cur = document.body;
            for (let i = 0; i < path.length; i++) {
                if (!cur || path[i] >= cur.childNodes.length) return null;
                cur = cur.childNodes[path[i]];
            }
            return cur;
        };
        const textOf = (node) => {
            // innerText only exists on element nodes
            if (node.nodeType !== Node.ELEMENT_NODE) return null;
            const t = node.innerText;
            return (t === undefined || t === null) ? null : t;
        };
        """

    def _get_snapshot_script(self) -> str:
        """Get the JavaScript for a single-pass tree serialization."""
        return self._get_follow_script() + r"""
        const maxDepth = arguments[0];

        const serialize = (node, depth) => {
            const out = { t: textOf(node), c: [] };
            const kids = node.childNodes;
            if (depth >= maxDepth) {
                if (kids.length) out.x = true;
                return out;
            }
            for (let i = 0; i < kids.length; i++) {
                out.c.push(serialize(kids[i], depth + 1));
            }
            return out;
        };

        if (!document.body) return null;
        return serialize(document.body, 0);
        """

    def _get_subtree_script(self) -> str:
        """Get the JavaScript reading one node plus markup at its item level."""
        return self._get_follow_script() + r"""
        const depth = arguments[1];

        const serialize = (node, level) => {
            const out = { t: textOf(node), c: [] };
            if (level >= depth) {
                if (node.nodeType === Node.ELEMENT_NODE) out.h = node.innerHTML;
                return out;
            }
            const kids = node.childNodes;
            for (let i = 0; i < kids.length; i++) {
                out.c.push(serialize(kids[i], level + 1));
            }
            return out;
        };

        if (!document.body) return null;
        const node = follow(arguments[0]);
        return node ? serialize(node, 0) : null;
        """
