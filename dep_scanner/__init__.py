# dep_scanner/__init__.py
"""Dependency vulnerability scanner for Maven and Gradle projects."""

__version__ = "0.1.0"
