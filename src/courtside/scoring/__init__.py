"""
Score validation and interpretation.

This module contains:
- Set representation and per-set validation
- Score string parsing
- Match format resolution (single set, best of three)
"""

from courtside.scoring.formats import (
    MatchResolution,
    SetsWon,
    entered_sets,
    resolve_match,
    tally_sets,
    validate_match_sets,
)
from courtside.scoring.parser import format_sets, parse_sets
from courtside.scoring.sets import SetScore, SetValidation, validate_set

__all__ = [
    "SetScore",
    "SetValidation",
    "validate_set",
    "MatchResolution",
    "SetsWon",
    "entered_sets",
    "resolve_match",
    "tally_sets",
    "validate_match_sets",
    "parse_sets",
    "format_sets",
]
