"""
Forkline - Text-anchored path location and polling extraction.

Finds nodes in a dynamically rendered tree by their text, records
replayable child-index paths to them, and extracts items under those
paths once asynchronous rendering has caught up.
"""

__version__ = "0.1.0"

from forkline.core.fork import ForkResult, Incompatible, split
from forkline.core.orchestrator import ForklineOrchestrator
from forkline.core.tree import Path, TreeNode, resolve
from forkline.layers.action.extractor import ExtractionRecord, PollingExtractor
from forkline.layers.sense.load_gate import LoadGate
from forkline.layers.sense.locator import PathLocator

__all__ = [
    "ForklineOrchestrator",
    "PathLocator",
    "LoadGate",
    "PollingExtractor",
    "ExtractionRecord",
    "ForkResult",
    "Incompatible",
    "split",
    "Path",
    "TreeNode",
    "resolve",
    "__version__",
]
