"""Engine configuration."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class EngineConfig:
    """Configuration for locating, polling and extraction."""
    # Polling
    interval_ms: int = 1000
    max_attempts: Optional[int] = 120  # None polls until cancelled
    deadline_s: Optional[float] = None
    # Extraction records
    record_tag: str = "twtl_v1"
    unknown_id: str = "UNKNOWNID"
    id_pattern: str = r"/status/([0-9]+)/"
    # Collection
    stall_limit: int = 10
    # Browser
    headless: bool = True
    profile_path: Optional[str] = None
    socks5_proxy: Optional[str] = None  # host:port
    page_load_timeout: int = 30
    script_timeout: int = 30
    navigation_attempts: int = 10  # page loads tried before a timeout propagates
    report_dir: str = "./forkline_reports"

    @property
    def interval_s(self) -> float:
        """Poll interval in seconds."""
        return self.interval_ms / 1000.0
