"""
Centralized configuration for blockplan.

Engine constants that vary by deployment belong here.
Override via environment variables where marked.
"""

import os

# ============================================================
# Slot search
# ============================================================

SNAP_MINUTES: int = int(os.environ.get("BLOCKPLAN_SNAP_MINUTES", "15"))
"""Granularity of candidate start times and of the forward conflict scan."""

LOOKAHEAD_DAYS: int = int(os.environ.get("BLOCKPLAN_LOOKAHEAD_DAYS", "7"))
"""Number of upcoming days each template block is expanded into."""

# ============================================================
# Record defaults
# ============================================================

DEFAULT_DURATION_MINUTES: int = int(os.environ.get("BLOCKPLAN_DEFAULT_DURATION", "30"))
"""Duration used when a task record has a missing or non-positive duration."""

DEFAULT_START: str = os.environ.get("BLOCKPLAN_DEFAULT_START", "09:00")
"""Time of day used when a time string cannot be parsed or a day anchor has no time."""

# ============================================================
# Block matching
# ============================================================

BUFFER_ACTIVITY: str = os.environ.get("BLOCKPLAN_BUFFER_ACTIVITY", "buffer")
"""Activity type of general-purpose blocks used when no block matches a task."""

# ============================================================
# Confidence scoring
# ============================================================

EXACT_MATCH_SCORE = 50
PRIORITY_SCORES = {"high": 20, "medium": 10, "low": 0}
EXPLICIT_PLACEMENT_CONFIDENCE = 100
