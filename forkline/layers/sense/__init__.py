"""Sense Layer - Reading the tree: locating, gating and snapshots."""

from forkline.layers.sense.dom_snapshot import BrowserTree, SnapshotNode
from forkline.layers.sense.identifiers import extract_identifier
from forkline.layers.sense.load_gate import LoadGate
from forkline.layers.sense.locator import PathLocator

__all__ = ["BrowserTree", "SnapshotNode", "LoadGate", "PathLocator", "extract_identifier"]
