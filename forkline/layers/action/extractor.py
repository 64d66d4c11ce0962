"""
Polling Extractor - Resilient extraction from a rendering tree.

Each tick re-reads the tree, follows the stored anchor path, waits for
the load gate to report ready children and then turns every ready
child into an ExtractionRecord. The whole ordered batch is delivered
once and the task is retired.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence
import logging

from forkline.core.config import EngineConfig
from forkline.core.tree import Path, as_path, child_at, resolve
from forkline.layers.action.poller import Poller, PollTask
from forkline.layers.sense.identifiers import compile_id_pattern, extract_identifier
from forkline.layers.sense.load_gate import LoadGate

logger = logging.getLogger(__name__)

RECORD_SEPARATOR = "\n"

# max_attempts value meaning "take it from EngineConfig"
FROM_CONFIG = -1

# Zero-argument callable returning the current root of the live tree.
# Providers with a ``subtree(path, depth)`` method are read per anchor instead.
TreeProvider = Callable[[], Any]


@dataclass(frozen=True)
class ExtractionRecord:
    """One extracted item: source tag, optional identifier, raw text."""
    tag: str
    identifier: Optional[str]
    text: str
    unknown_id: str = "UNKNOWNID"

    def render(self) -> str:
        """Join tag, identifier (or placeholder) and text line by line."""
        return RECORD_SEPARATOR.join([
            self.tag,
            self.identifier if self.identifier is not None else self.unknown_id,
            self.text,
        ])

    def __str__(self) -> str:
        return self.render()

    @classmethod
    def parse(cls, rendered: str, unknown_id: str = "UNKNOWNID") -> "ExtractionRecord":
        """Read back a rendered record."""
        parts = rendered.split(RECORD_SEPARATOR, 2)
        if len(parts) < 2:
            raise ValueError(f"Not a rendered record: {rendered[:40]!r}")
        tag, identifier = parts[0], parts[1]
        text = parts[2] if len(parts) == 3 else ""
        return cls(
            tag=tag,
            identifier=None if identifier == unknown_id else identifier,
            text=text,
            unknown_id=unknown_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"tag": self.tag, "identifier": self.identifier, "text": self.text}


class PollingExtractor:
    """
    Extract ready children of an anchor node once rendering catches up.

    Resolution failures and empty containers are routine: the tick just
    returns and the next one tries again, until the task delivers, is
    replaced by a new poll of the same name, or runs out of attempts.

    Example:
        >>> extractor = PollingExtractor(BrowserTree(driver))
        >>> extractor.start_polling("get_tweets", (2, 0, 0), 1000, on_ready=save)
        >>> extractor.poller.run_until_idle()
    """

    def __init__(
        self,
        tree_provider: TreeProvider,
        config: Optional[EngineConfig] = None,
        poller: Optional[Poller] = None,
        gate: Optional[LoadGate] = None,
    ):
        """
        Initialize the extractor.

        Args:
            tree_provider: Returns the current root on every call
            config: Engine configuration (defaults if omitted)
            poller: Poller owning the task registry (a fresh one by default)
            gate: Load gate implementation

        Raises:
            ValueError: if the configured id pattern has no capture group
        """
        self.tree_provider = tree_provider
        self.config = config or EngineConfig()
        compile_id_pattern(self.config.id_pattern)
        self.poller = poller or Poller()
        self.gate = gate or LoadGate()

    def start_polling(
        self,
        name: str,
        anchor_path: Sequence[int],
        interval_ms: Optional[int],
        on_ready: Callable[[List[ExtractionRecord]], None],
        on_failed: Optional[Callable[[PollTask], None]] = None,
        max_attempts: Optional[int] = FROM_CONFIG,
        marker: Optional[str] = None,
    ) -> PollTask:
        """
        Start (or restart) the named extraction task.

        Args:
            name: Task name; a running task of the same name is cancelled
            anchor_path: Path to the container whose children are items
            interval_ms: Tick interval (config default when None)
            on_ready: Receives the ordered record list, at most once
            on_failed: Called once if attempts or the deadline run out
            max_attempts: Attempt budget; FROM_CONFIG uses the config, None is unbounded
            marker: Descend into the anchor child containing this text first
        """
        path = as_path(anchor_path)
        if max_attempts == FROM_CONFIG:
            max_attempts = self.config.max_attempts
        return self.poller.start(
            name=name,
            probe=lambda: self.try_extract(path, marker=marker),
            interval_ms=interval_ms or self.config.interval_ms,
            on_ready=on_ready,
            on_failed=on_failed,
            max_attempts=max_attempts,
            deadline_s=self.config.deadline_s,
        )

    def try_extract(self, anchor_path: Path, marker: Optional[str] = None) -> Optional[List[ExtractionRecord]]:
        """
        One resolve, gate, extract attempt against a fresh tree.

        Returns:
            The records, or None while the anchor is unresolved or empty
        """
        anchor = self._read_anchor(anchor_path, marker is not None)
        if anchor is None:
            logger.debug(f"Anchor {list(anchor_path)} not resolvable yet")
            return None

        if marker is not None:
            index = self.gate.find_marked_child(anchor, marker)
            if index is None:
                logger.debug(f"No child of {list(anchor_path)} contains marker yet")
                return None
            anchor = child_at(anchor, index)

        n_ready = self.gate.count_ready(anchor)
        if n_ready == 0:
            logger.debug(f"Anchor {list(anchor_path)} has no ready children")
            return None

        return [self.extract_record(anchor.children[i]) for i in range(n_ready)]

    def _read_anchor(self, anchor_path: Path, marked: bool) -> Optional[Any]:
        subtree = getattr(self.tree_provider, "subtree", None)
        if subtree is None:
            return resolve(self.tree_provider(), anchor_path)
        # Items sit one level deeper behind a marked child
        return subtree(anchor_path, 2 if marked else 1)

    def extract_record(self, node: Any) -> ExtractionRecord:
        """Build the record for one ready child."""
        identifier = extract_identifier(getattr(node, "markup", ""), self.config.id_pattern)
        return ExtractionRecord(
            tag=self.config.record_tag,
            identifier=identifier,
            text=node.text or "",
            unknown_id=self.config.unknown_id,
        )

    def extract_once(
        self,
        anchor_path: Sequence[int],
        name: str = "extract",
        marker: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Optional[List[ExtractionRecord]]:
        """
        Poll until delivery and return the records.

        Returns None if the task failed, was cancelled, or the timeout
        passed first.
        """
        delivered: List[List[ExtractionRecord]] = []
        task = self.start_polling(name, anchor_path, None, on_ready=delivered.append, marker=marker)
        self.poller.run_until_idle(timeout=timeout)
        if task.is_active:
            self.poller.registry.cancel(name)
        return delivered[0] if delivered else None
