"""filepilot-git - git repository discovery and status engine for FilePilot.

This package locates repositories under configured roots, tracks the one
the user is browsing, parses ``git status --porcelain`` into structured
changes, and stages, unstages and commits through the ``git`` binary.

Exports:
    __version__: Package version string.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.3.0"
