"""
Test fixtures for deterministic testing.

This module provides:
- builders: terse constructors for blocks, tasks and committed tasks
"""

from .builders import committed, make_block, make_task

__all__ = ["committed", "make_block", "make_task"]
