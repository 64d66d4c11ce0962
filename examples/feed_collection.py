#!/usr/bin/env python3
"""
Feed Collection Example
=======================

Finds the list container of a feed from two item texts the page is
known to render, then collects unique items while scrolling.

Usage:
    python examples/feed_collection.py URL TEXT1 TEXT2 [COUNT]
"""

import sys

from forkline import ForklineOrchestrator, ForkResult
from forkline.core.config import EngineConfig


def main():
    if len(sys.argv) < 4:
        print(__doc__)
        sys.exit(1)

    url, text1, text2 = sys.argv[1:4]
    count = int(sys.argv[4]) if len(sys.argv) > 4 else 20

    config = EngineConfig(headless=False, interval_ms=500)

    with ForklineOrchestrator(url=url, config=config) as fl:
        fork = fl.locate_fork(text1, text2, wait_for=text2)
        if not isinstance(fork, ForkResult):
            print(f"No fork found: {fork}")
            sys.exit(2)

        print(f"Items live under {fork.describe()}")
        print("-" * 40)

        records = fl.collect([fork], count)
        for record in records:
            print(record.render())
            print()

        print(f"Collected {len(records)}/{count} items")
        print(f"Report: {fl.generate_report()}")


if __name__ == "__main__":
    main()
