"""Error taxonomy for Courtside.

Validation and lifecycle failures are *returned* to callers inside typed
result objects (``SetValidation``, ``MatchResolution``, ``TransitionResult``)
holding one of these instances, so UI and automation code can branch on
``reason`` without try/except. They are only raised where a caller passed
something that can never be valid, such as an unparseable score string.
"""

from typing import Optional


class CourtsideError(Exception):
    """Base exception for all Courtside errors.

    Carries a human-readable ``reason`` that is safe to show to a user.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


# ========== Score validation ==========


class ScoreValidationError(CourtsideError):
    """Base class for problems with entered set scores."""

    def __init__(self, reason: str, set_index: Optional[int] = None):
        super().__init__(reason)
        self.set_index = set_index


class TiedSetError(ScoreValidationError):
    """A set's two scores are equal and non-zero."""

    def __init__(self, set_index: Optional[int] = None, games: Optional[int] = None):
        if set_index is None:
            reason = "Tied set: a set cannot end level"
        else:
            reason = f"Set {set_index + 1} is tied ({games}-{games}): a set cannot end level"
        super().__init__(reason, set_index)
        self.games = games


class InvalidSetScoreError(ScoreValidationError):
    """A set score breaks the set rules (unfinished, bad margin, too many games)."""


class FormatMismatchError(ScoreValidationError):
    """Wrong number of sets, or the tally does not satisfy the match format."""


class ScoreParseError(CourtsideError):
    """Raised when a score string cannot be parsed."""


# ========== Lifecycle ==========


class InvalidTransitionError(CourtsideError):
    """A lifecycle transition is not allowed from the match's current state."""

    def __init__(self, reason: str, from_status: Optional[str] = None, operation: Optional[str] = None):
        super().__init__(reason)
        self.from_status = from_status
        self.operation = operation


class ConcurrentUpdateError(CourtsideError):
    """Another writer changed the match between our read and our write."""

    def __init__(self, match_id: str, expected_version: int):
        super().__init__(
            f"Match {match_id} was modified concurrently "
            f"(expected version {expected_version}); reload and try again"
        )
        self.match_id = match_id
        self.expected_version = expected_version


# ========== Record store ==========


class MatchNotFoundError(CourtsideError):
    """Raised when a match id does not exist in the record store."""

    def __init__(self, match_id: str):
        super().__init__(f"Match {match_id} not found")
        self.match_id = match_id
