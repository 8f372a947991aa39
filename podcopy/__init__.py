"""podcopy: pull a file out of every pod matching a selector and bundle the results."""

__version__ = "0.1.0"
