"""
Forkline Orchestrator - Browser session plus engine.

Wires a WebDriver, the DOM snapshot provider and the locate / fork /
extract components into the three end-to-end flows: find a node by
text, find a fork between two sibling items, and extract (or collect)
items under an anchor once the page has rendered them.
"""

from typing import Any, List, Optional, Sequence, Union
import logging

from selenium.common.exceptions import TimeoutException

from forkline.core.config import EngineConfig
from forkline.core.driver_factory import WebDriverType, create_driver_from_config
from forkline.core.fork import ForkResult, Incompatible, split
from forkline.core.tree import Path
from forkline.layers.action.collector import Anchor, RecordCollector
from forkline.layers.action.extractor import ExtractionRecord, PollingExtractor
from forkline.layers.action.poller import Poller
from forkline.layers.sense.dom_snapshot import BrowserTree
from forkline.layers.sense.locator import PathLocator
from forkline.reporters import FlightRecorder

logger = logging.getLogger(__name__)


class ForklineOrchestrator:
    """
    Master controller for one page.

    Components are created lazily on first use, so constructing an
    orchestrator never starts a browser by itself.

    Example:
        >>> with ForklineOrchestrator("https://example.com/feed") as fl:
        ...     fork = fl.locate_fork("__1__", "__0__", wait_for="__0__")
        ...     records = fl.collect([fork], count=20)
    """

    def __init__(
        self,
        url: Optional[str] = None,
        config: Optional[EngineConfig] = None,
        driver: Optional[WebDriverType] = None,
        tree: Optional[Any] = None,
        recorder: Optional[FlightRecorder] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            url: Page to open on first use (None keeps the current page)
            config: Engine and browser configuration
            driver: Existing WebDriver to use instead of creating one
            tree: Tree provider to use instead of a BrowserTree
            recorder: FlightRecorder for this run
        """
        self.url = url
        self.config = config or EngineConfig()
        self._driver = driver
        self._owns_driver = driver is None and tree is None
        self._tree = tree
        self._recorder = recorder
        self._locator = PathLocator()
        self._poller: Optional[Poller] = None
        self._extractor: Optional[PollingExtractor] = None
        self._initialized = False

    @property
    def driver(self) -> WebDriverType:
        """Get the WebDriver instance, creating it if needed."""
        self._initialize()
        return self._driver

    @property
    def tree(self) -> Any:
        self._initialize()
        return self._tree

    @property
    def recorder(self) -> FlightRecorder:
        if self._recorder is None:
            self._recorder = FlightRecorder(output_dir=self.config.report_dir)
        return self._recorder

    @property
    def extractor(self) -> PollingExtractor:
        self._initialize()
        return self._extractor

    def _initialize(self) -> None:
        """Initialize all components lazily."""
        if self._initialized:
            return

        try:
            if self._tree is None:
                if self._driver is None:
                    self._driver = create_driver_from_config(self.config)
                self._tree = BrowserTree(self._driver)

            self._poller = Poller(recorder=self.recorder)
            self._extractor = PollingExtractor(self._tree, config=self.config, poller=self._poller)
            self._initialized = True

            if self.url and self._driver is not None:
                self._navigate(self.url)
        except Exception:
            self.close()
            raise

    def _navigate(self, url: str) -> None:
        """Load ``url``, retrying page-load timeouts up to the configured budget."""
        attempts = max(1, self.config.navigation_attempts)
        for attempt in range(1, attempts + 1):
            try:
                self._driver.get(url)
                break
            except TimeoutException:
                if attempt == attempts:
                    self.recorder.log_failure("navigate", attempt, f"Timed out loading {url}")
                    raise
                logger.warning(f"Page load timed out ({attempt}/{attempts}), retrying {url}")
        self.recorder.log_navigation(url)

    def locate(self, text: str) -> Optional[Path]:
        """Locate one node by exact text in the current page."""
        path = self._locator.locate(self.tree.snapshot(), text)
        self.recorder.log_locate(text, path)
        return path

    def locate_fork(
        self,
        text1: str,
        text2: str,
        wait_for: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Optional[Union[ForkResult, Incompatible]]:
        """
        Locate two sibling items and split their paths at the fork.

        Polls until the page text contains ``wait_for`` (if given) and
        both texts are found, then delivers the split.

        Returns:
            ForkResult, Incompatible for paths of different depth, or
            None if polling failed or timed out
        """
        self._initialize()
        delivered: List[Union[ForkResult, Incompatible]] = []

        def probe() -> Optional[Union[ForkResult, Incompatible]]:
            if wait_for is not None and wait_for not in self._tree.body_text():
                return None
            found = self._locator.locate_first(self._tree.snapshot(), (text1, text2))
            if found is None or found[0] is None or found[1] is None:
                return None
            path1, path2 = found
            self.recorder.log_locate(text1, path1)
            self.recorder.log_locate(text2, path2)
            return split(path1, path2)

        self._poller.start(
            name="get-fork",
            probe=probe,
            interval_ms=self.config.interval_ms,
            on_ready=delivered.append,
            max_attempts=self.config.max_attempts,
            deadline_s=self.config.deadline_s,
        )
        self._poller.run_until_idle(timeout=timeout)
        self._poller.registry.cancel("get-fork")

        if not delivered:
            return None
        result = delivered[0]
        self.recorder.log_fork(result)
        if isinstance(result, ForkResult) and not result.suffixes_agree:
            message = (
                f"Items under {list(result.upper_path)} differ below the fork: "
                f"{list(result.lower_offsets)} vs {list(result.sibling_offsets)}"
            )
            logger.warning(message)
            self.recorder.log_warning(message)
        return result

    def extract(
        self,
        anchor: Anchor,
        marker: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Optional[List[ExtractionRecord]]:
        """Extract the ready items under ``anchor`` once."""
        upper = anchor.upper_path if isinstance(anchor, ForkResult) else tuple(anchor)
        return self.extractor.extract_once(upper, name="get-items", marker=marker, timeout=timeout)

    def collect(
        self,
        anchors: Sequence[Anchor],
        count: int,
        round_timeout: Optional[float] = None,
        marker: Optional[str] = None,
    ) -> List[ExtractionRecord]:
        """Collect ``count`` unique items, scrolling between rounds."""
        collector = RecordCollector(
            self.extractor,
            after_round=self._scroll_last_loaded,
            round_timeout=round_timeout,
            marker=marker,
        )
        records = collector.collect(anchors, count)
        self.recorder.log_info(f"Collected {len(records)}/{count} records")
        return records

    def _scroll_last_loaded(self, anchor: ForkResult, n_loaded: int) -> None:
        if n_loaded > 0 and hasattr(self._tree, "scroll_to"):
            self._tree.scroll_to(anchor.item_path(n_loaded - 1, include_offsets=False))

    def generate_report(self) -> str:
        """Write the flight record for this run."""
        return self.recorder.generate_report()

    def close(self) -> None:
        """Cancel pending polls and quit a driver this orchestrator created."""
        if self._poller is not None:
            self._poller.registry.clear()
        self._initialized = False
        if self._driver is not None and self._owns_driver:
            try:
                self._driver.quit()
            finally:
                self._driver = None
                self._tree = None

    def __enter__(self) -> "ForklineOrchestrator":
        self._initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False
