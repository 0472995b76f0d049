"""Fatal errors raised while gathering facts or building a graph."""

from __future__ import annotations


class GraphBuildError(Exception):
    """Input problem that aborts the run before any output is produced."""


class MetadataError(GraphBuildError):
    """Package metadata could not be obtained or understood."""


class SourceError(GraphBuildError):
    """The source tree to analyze is missing."""
