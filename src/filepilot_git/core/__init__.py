"""Core shared infrastructure for filepilot-git.

This package contains foundational utilities:
    - config: Application configuration management
    - console: Rich console output and logging
    - result: Result type and error taxonomy
    - decorators: CLI error presentation
"""

from __future__ import annotations

from . import config, console

__all__ = ["config", "console"]
