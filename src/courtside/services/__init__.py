"""
Services for the Courtside record store.

- results: applies lifecycle transitions to stored matches as atomic
  compare-and-set writes, and keeps rating deltas, knockout brackets and
  group standings in step
"""

from courtside.services.results import MatchResultService, ResultUpdate

__all__ = [
    "MatchResultService",
    "ResultUpdate",
]
