"""
Record Collector - Gather N unique records from a growing feed.

A single extraction only sees what is rendered right now. The collector
repeats extraction rounds, deduplicates, lets the caller load more
between rounds (usually by scrolling the last item into view) and falls
back through candidate anchors when a stored path stops resolving.
"""

from typing import Callable, List, Optional, Sequence, Set, Union
import logging

from forkline.core.fork import ForkResult
from forkline.core.tree import as_path
from forkline.layers.action.extractor import ExtractionRecord, PollingExtractor

logger = logging.getLogger(__name__)

Anchor = Union[ForkResult, Sequence[int]]


class AllAnchorsFailed(Exception):
    """No candidate anchor produced any record."""


class RecordCollector:
    """
    Collect unique records across several extraction rounds.

    Example:
        >>> collector = RecordCollector(extractor, after_round=scroll_last)
        >>> records = collector.collect(cached_anchors, count=40)
    """

    def __init__(
        self,
        extractor: PollingExtractor,
        after_round: Optional[Callable[[ForkResult, int], None]] = None,
        stall_limit: Optional[int] = None,
        round_timeout: Optional[float] = None,
        task_name: str = "collect",
        marker: Optional[str] = None,
    ):
        """
        Initialize the collector.

        Args:
            extractor: Extractor used for each round
            after_round: Called with the anchor and batch size after a round
            stall_limit: Rounds without new records before assuming the end
            round_timeout: Seconds a single round may poll
            task_name: Poll task name used for every round
            marker: Passed to each extraction round (see PollingExtractor)
        """
        self.extractor = extractor
        self.after_round = after_round
        self.stall_limit = stall_limit if stall_limit is not None else extractor.config.stall_limit
        self.round_timeout = round_timeout
        self.task_name = task_name
        self.marker = marker

    def collect(self, anchors: Sequence[Anchor], count: int) -> List[ExtractionRecord]:
        """
        Collect up to ``count`` unique records.

        Raises:
            AllAnchorsFailed: if every anchor failed before any record arrived
        """
        candidates = [self._as_fork(a) for a in anchors]
        if not candidates:
            raise ValueError("At least one anchor is required")

        collected: List[ExtractionRecord] = []
        seen: Set[str] = set()
        anchor_i = 0
        stalled = 0

        while len(collected) < count:
            anchor = candidates[anchor_i]
            batch = self.extractor.extract_once(
                anchor.upper_path,
                name=self.task_name,
                marker=self.marker,
                timeout=self.round_timeout,
            )

            if batch is None:
                anchor_i += 1
                if anchor_i < len(candidates):
                    logger.info(f"Anchor {list(anchor.upper_path)} gave nothing, trying next candidate")
                    continue
                if collected:
                    logger.info("All anchors exhausted, keeping what was collected")
                    break
                raise AllAnchorsFailed(f"None of {len(candidates)} anchors produced records")

            new = 0
            for record in batch:
                key = record.render()
                if key in seen:
                    continue
                seen.add(key)
                collected.append(record)
                new += 1
                if len(collected) == count:
                    break

            logger.debug(f"Round got {len(batch)} records, {new} new, {len(collected)}/{count}")

            if new == 0:
                stalled += 1
                if stalled >= self.stall_limit:
                    logger.info(f"No new records for {stalled} rounds, assuming end of feed")
                    break
                self.extractor.poller.sleep(self.extractor.config.interval_s)
            else:
                stalled = 0

            if len(collected) < count and self.after_round:
                self.after_round(anchor, len(batch))

        return collected

    @staticmethod
    def _as_fork(anchor: Anchor) -> ForkResult:
        if isinstance(anchor, ForkResult):
            return anchor
        return ForkResult.anchor(as_path(anchor))
