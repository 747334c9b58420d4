"""
RPA (Rating Points Algorithm) constants.

The award for a match is:

    pts = round((base + gd) * factor)

base: How much the match is worth. Stronger pairs play for more points.
    base = (sum of all four player ratings) / BASE_DIVISOR

gd: Game differential of the winner (games won - games lost). Clamped to
    [-GD_MIN_SHARE * base, GD_MAX_SHARE * base] so a lopsided or a narrow
    result scales the award but can never flip its sign.

factor: Depends on the rating gap seen from the winner's side
    (positive = the winner was the lower-rated pair). Favourites winning
    as expected get a reduced factor (protection against inflation);
    underdogs winning get a bonus. Bounded to [0.40, 1.60].

The winner gains pts and the loser loses exactly pts, so every match is
zero-sum. A competition multiplier may scale both sides afterwards.
"""

from decimal import Decimal

# Divides the four-player rating sum into the base award
BASE_DIVISOR = Decimal("100")

# Bounds on the game-differential term, as shares of base
GD_MIN_SHARE = Decimal("0.5")
GD_MAX_SHARE = Decimal("1.0")

# Winner-relative gap bands -> factor, lowest gap first.
# Each entry is (upper bound of the band, inclusive flag, factor); the first
# band whose bound the gap does not exceed is used.
# Gap <= -2000: certain win for the favourite
# Gap in (-300, 300): balanced match
# Gap > 2000: historic upset
FACTOR_BANDS: tuple[tuple[Decimal, bool, Decimal], ...] = (
    (Decimal("-2000"), True, Decimal("0.40")),
    (Decimal("-1500"), True, Decimal("0.60")),
    (Decimal("-900"), True, Decimal("0.75")),
    (Decimal("-300"), True, Decimal("0.90")),
    (Decimal("300"), False, Decimal("1.00")),
    (Decimal("900"), True, Decimal("1.10")),
    (Decimal("1500"), True, Decimal("1.25")),
    (Decimal("2000"), True, Decimal("1.40")),
)

# Factor for gaps above the last band
MAX_FACTOR = Decimal("1.60")
MIN_FACTOR = FACTOR_BANDS[0][2]


def factor_for_gap(winner_gap: Decimal) -> Decimal:
    """
    Look up the factor for a winner-relative rating gap.

    Args:
        winner_gap: Opponent pair rating sum minus winner pair rating sum

    Returns:
        Factor in [MIN_FACTOR, MAX_FACTOR]; non-decreasing in winner_gap

    Examples:
        factor_for_gap(Decimal("0"))      # 1.00
        factor_for_gap(Decimal("-2500"))  # 0.40 (favourite won)
        factor_for_gap(Decimal("1000"))   # 1.25 (underdog won)
    """
    for bound, inclusive, factor in FACTOR_BANDS:
        if winner_gap < bound or (inclusive and winner_gap == bound):
            return factor
    return MAX_FACTOR
