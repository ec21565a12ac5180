"""flink-results - incremental Flink SQL statement results viewer."""

from flink_results.__about__ import __version__

__all__ = ["__version__"]
