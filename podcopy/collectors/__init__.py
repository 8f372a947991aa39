"""
Copy collectors (read-only, failure-isolating).

- resolver: selectors -> pods, per-selector errors recorded, never raised
- fetcher:  one pod -> FetchSuccess | FetchFailure, never raises for pod faults
- copy:     drives both and merges outcomes into one ResultBundle
"""

from podcopy.collectors.copy import collect
from podcopy.collectors.fetcher import fetch
from podcopy.collectors.resolver import resolve

__all__ = [
    "collect",
    "fetch",
    "resolve",
]
