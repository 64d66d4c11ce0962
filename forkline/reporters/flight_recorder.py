"""
Flight Recorder - Run event logging and report export.

Captures what the engine did during a run (navigation, locates, forks,
poll ticks, deliveries, failures) and writes it out as JSON.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
from datetime import datetime
import json
import os


@dataclass
class LogEntry:
    """A single log entry in the flight record."""
    timestamp: datetime
    step: int
    event_type: str  # 'navigation', 'locate', 'fork', 'tick', 'delivery', 'failure', 'warning', 'error', 'info'
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "step": self.step,
            "event_type": self.event_type,
            "message": self.message,
            "data": self.data,
        }


class FlightRecorder:
    """
    Records the engine's activity for one run.

    Ticks are counted rather than stored one by one, since an
    unresponsive page can produce hundreds of them.

    Example:
        >>> recorder = FlightRecorder()
        >>> recorder.log_navigation("https://example.com")
        >>> recorder.log_locate("Latest", (2, 0, 1))
        >>> report_path = recorder.generate_report()
    """

    def __init__(
        self,
        output_dir: str = "./forkline_reports",
        run_name: Optional[str] = None,
    ):
        """
        Initialize the flight recorder.

        Args:
            output_dir: Directory for reports
            run_name: Optional name for this run
        """
        self.output_dir = output_dir
        self.run_name = run_name or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.entries: List[LogEntry] = []
        self.tick_counts: Dict[str, int] = {}
        self.metadata: Dict[str, Any] = {
            "start_time": datetime.now().isoformat(),
            "run_name": self.run_name,
        }
        self.run_dir = os.path.join(output_dir, self.run_name)

    def _add(self, event_type: str, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        self.entries.append(LogEntry(
            timestamp=datetime.now(),
            step=len(self.entries),
            event_type=event_type,
            message=message,
            data=data or {},
        ))

    def log_navigation(self, url: str) -> None:
        """Log a navigation event."""
        self._add("navigation", f"Navigated to {url}", {"url": url})
        self.metadata["url"] = url

    def log_locate(self, text: str, path: Optional[Sequence[int]]) -> None:
        """Log the outcome of a text locate."""
        if path is None:
            self._add("locate", f"Not found: {text[:30]!r}", {"text": text, "path": None})
        else:
            self._add("locate", f"Located {text[:30]!r}", {"text": text, "path": list(path)})

    def log_fork(self, result: Any) -> None:
        """Log a fork split (ForkResult or Incompatible)."""
        data = result.to_dict() if hasattr(result, "to_dict") else {"error": str(result)}
        self._add("fork", f"Fork split: {result}", data)

    def log_tick(self, task_name: str, attempt: int) -> None:
        """Count an unsuccessful poll tick."""
        self.tick_counts[task_name] = self.tick_counts.get(task_name, 0) + 1

    def log_delivery(self, task_name: str, attempts: int, result: Any) -> None:
        """Log a successful delivery."""
        size = len(result) if isinstance(result, (list, tuple)) else 1
        self._add(
            "delivery",
            f"Task '{task_name}' delivered after {attempts} attempts",
            {"task": task_name, "attempts": attempts, "size": size},
        )

    def log_failure(self, task_name: str, attempts: int, last_error: Optional[str] = None) -> None:
        """Log a task that ran out of attempts."""
        self._add(
            "failure",
            f"Task '{task_name}' gave up after {attempts} attempts",
            {"task": task_name, "attempts": attempts, "last_error": last_error},
        )

    def log_info(self, message: str) -> None:
        """Log a general information message."""
        self._add("info", message)

    def log_warning(self, message: str) -> None:
        """Log a warning."""
        self._add("warning", message)

    def events(self, event_type: str) -> List[LogEntry]:
        """All entries of one type."""
        return [e for e in self.entries if e.event_type == event_type]

    def to_dict(self) -> Dict[str, Any]:
        """Convert the whole record to a dictionary."""
        return {
            "metadata": self.metadata,
            "tick_counts": self.tick_counts,
            "entries": [e.to_dict() for e in self.entries],
        }

    def generate_report(self) -> str:
        """
        Write ``flight_record.json`` into the run directory.

        Returns:
            Path to the written report
        """
        self.metadata["end_time"] = datetime.now().isoformat()
        self.metadata["deliveries"] = len(self.events("delivery"))
        self.metadata["failures"] = len(self.events("failure"))

        os.makedirs(self.run_dir, exist_ok=True)
        report_path = os.path.join(self.run_dir, "flight_record.json")
        with open(report_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
        return report_path
