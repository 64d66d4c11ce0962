"""Core module - Tree model, fork splitting, configuration and orchestration."""

from forkline.core.config import EngineConfig
from forkline.core.fork import ForkResult, Incompatible, split
from forkline.core.orchestrator import ForklineOrchestrator
from forkline.core.tree import Path, TreeNode, resolve

__all__ = [
    "EngineConfig",
    "ForkResult",
    "Incompatible",
    "split",
    "ForklineOrchestrator",
    "Path",
    "TreeNode",
    "resolve",
]
