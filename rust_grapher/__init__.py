"""Dependency and function call graphs for Rust projects."""

__version__ = "0.1.0"
