"""
Match format resolution.

Turns a whole score sheet into a sets-won tally and decides whether it is a
finished match for its format:

- singleSet: exactly one entered set, won 1-0 or 0-1
- bestOfThree: two or three entered sets, first team to 2 sets wins
  (2-0, 0-2, 2-1, 1-2)

``validate_match_sets`` is the gate a match must pass before the lifecycle
controller will mark it completed: every entered set is checked with
``validate_set`` first, then the whole sheet is resolved here.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from courtside.exceptions import FormatMismatchError, ScoreValidationError, TiedSetError
from courtside.match_statuses import ALL_MATCH_FORMATS, BEST_OF_THREE, SINGLE_SET
from courtside.scoring.sets import SetScore, validate_set

# Sets a team must win to take the match, by format
SETS_TO_WIN = {
    SINGLE_SET: 1,
    BEST_OF_THREE: 2,
}

# Maximum number of sets that can be played, by format
MAX_SETS = {
    SINGLE_SET: 1,
    BEST_OF_THREE: 3,
}


@dataclass(frozen=True)
class SetsWon:
    """Sets-won tally for a match (the match's derived score)."""
    team1: int = 0
    team2: int = 0

    def to_dict(self) -> dict:
        return {"team1": self.team1, "team2": self.team2}


@dataclass(frozen=True)
class MatchResolution:
    """
    Result of resolving a score sheet against a match format.

    Attributes:
        sets_won: Sets won by each team across the entered sets
        games: Total games won by (team1, team2) across the entered sets
        complete: True if the sheet is a finished match for its format
        winner_side: 1 or 2 when complete, else None
        winner_id: Winning team id when complete and team ids were given
        entered_sets: The sets that were actually entered (0-0 slots dropped)
        error: Why the sheet is not a finished match (never raised)
    """
    sets_won: SetsWon
    games: tuple[int, int]
    complete: bool
    winner_side: Optional[int] = None
    winner_id: Optional[str] = None
    entered_sets: tuple[SetScore, ...] = field(default_factory=tuple)
    error: Optional[ScoreValidationError] = None

    @property
    def reason(self) -> Optional[str]:
        return self.error.reason if self.error else None

    @property
    def winner(self) -> Optional[str]:
        """'A' for team 1, 'B' for team 2, matching the rating calculator."""
        if self.winner_side == 1:
            return "A"
        if self.winner_side == 2:
            return "B"
        return None


def entered_sets(sets: Iterable[SetScore]) -> list[SetScore]:
    """Drop empty (0-0) slots, keeping order."""
    return [s for s in sets if s.is_entered]


def resolve_match(
    sets: Iterable[SetScore],
    match_format: str,
    team1_id: Optional[str] = None,
    team2_id: Optional[str] = None,
) -> MatchResolution:
    """
    Tally a score sheet and decide whether it completes the match.

    Args:
        sets: Ordered set scores (0-0 placeholders allowed)
        match_format: 'singleSet' or 'bestOfThree'
        team1_id: Optional id reported as winner_id when team 1 wins
        team2_id: Optional id reported as winner_id when team 2 wins

    Returns:
        MatchResolution with the tally, games and completion verdict

    Examples:
        resolve_match([SetScore(6, 4)], "singleSet").complete                    # True
        resolve_match([SetScore(6, 4), SetScore(4, 6)], "bestOfThree").reason
        # 'Sets are level at 1-1: needs a deciding third set'
    """
    played = entered_sets(sets)

    team1_sets = team2_sets = 0
    games_1 = games_2 = 0
    tied_index = None
    tied_games = None

    for index, s in enumerate(played):
        games_1 += s.team1_games
        games_2 += s.team2_games
        side = s.winner_side
        if side == 1:
            team1_sets += 1
        elif side == 2:
            team2_sets += 1
        elif tied_index is None:
            tied_index, tied_games = index, s.team1_games

    tally = SetsWon(team1_sets, team2_sets)
    partial = dict(sets_won=tally, games=(games_1, games_2), entered_sets=tuple(played))

    if tied_index is not None:
        return MatchResolution(complete=False, error=TiedSetError(tied_index, tied_games), **partial)

    if match_format not in ALL_MATCH_FORMATS:
        return MatchResolution(
            complete=False,
            error=FormatMismatchError(f"Unknown match format '{match_format}'"),
            **partial,
        )

    reason = _format_problem(len(played), team1_sets, team2_sets, match_format)
    if reason is not None:
        return MatchResolution(complete=False, error=FormatMismatchError(reason), **partial)

    winner_side = 1 if team1_sets > team2_sets else 2
    winner_id = team1_id if winner_side == 1 else team2_id

    return MatchResolution(
        complete=True,
        winner_side=winner_side,
        winner_id=winner_id,
        **partial,
    )


def _format_problem(count: int, team1_sets: int, team2_sets: int, match_format: str) -> Optional[str]:
    """Return why the tally does not finish the match, or None if it does."""
    if count == 0:
        return "No sets entered"

    max_sets = MAX_SETS[match_format]
    to_win = SETS_TO_WIN[match_format]

    if count > max_sets:
        return f"Too many sets for this format ({count} entered, at most {max_sets})"

    if match_format == SINGLE_SET:
        # One entered, non-tied set always decides a single-set match
        return None

    if max(team1_sets, team2_sets) == to_win:
        return None

    if count == 1:
        return "Needs a second set"
    if count == 2:
        return "Sets are level at 1-1: needs a deciding third set"
    # Three sets all won by the same team
    return f"Too many sets for this format: the match was decided before set {count}"


def validate_match_sets(
    sets: Iterable[SetScore],
    match_format: str,
    use_strict_rules: bool = True,
    team1_id: Optional[str] = None,
    team2_id: Optional[str] = None,
) -> MatchResolution:
    """
    Validate every entered set, then resolve the whole sheet.

    Set positions are counted among entered sets, so the third entered set
    of a best-of-three is the deciding set even when empty slots sit in
    between.

    Returns:
        The first failing set's error wrapped in an incomplete
        MatchResolution, or the resolve_match() result.
    """
    sets = list(sets)
    played = entered_sets(sets)

    for index, s in enumerate(played):
        check = validate_set(s, index, match_format, use_strict_rules)
        if not check.valid:
            games = (sum(x.team1_games for x in played), sum(x.team2_games for x in played))
            return MatchResolution(
                sets_won=tally_sets(played),
                games=games,
                complete=False,
                entered_sets=tuple(played),
                error=check.error,
            )

    return resolve_match(sets, match_format, team1_id, team2_id)


def tally_sets(sets: Iterable[SetScore]) -> SetsWon:
    """Count the sets each team won; tied or empty sets count for nobody."""
    t1 = t2 = 0
    for s in sets:
        if s.winner_side == 1:
            t1 += 1
        elif s.winner_side == 2:
            t2 += 1
    return SetsWon(t1, t2)
