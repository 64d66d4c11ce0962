"""
Identifier extraction from raw markup.

Items often embed a stable id only inside a link, e.g.
``<a href="/someone/status/1234567890/photo/1">``. The expected shape
is a regex with exactly one capture group; group 1 is the identifier.
"""

from functools import lru_cache
from typing import Optional, Pattern
import re

DEFAULT_ID_PATTERN = r"/status/([0-9]+)/"


@lru_cache(maxsize=32)
def compile_id_pattern(pattern: str) -> Pattern[str]:
    """Compile and validate an identifier pattern."""
    compiled = re.compile(pattern)
    if compiled.groups < 1:
        raise ValueError(f"Identifier pattern needs a capture group: {pattern!r}")
    return compiled


def extract_identifier(markup: Optional[str], pattern: str = DEFAULT_ID_PATTERN) -> Optional[str]:
    """
    Pull the first identifier matching ``pattern`` out of ``markup``.

    Returns:
        Capture group 1 of the first match, or None if the shape is absent
    """
    if not markup:
        return None
    match = compile_id_pattern(pattern).search(markup)
    if match is None:
        return None
    return match.group(1)
