"""
Courtside - Tournament Scoring & Rating Engine

The algorithmic core of a doubles racket-sport club/tournament platform.
Takes raw set scores from match entry and turns them into validated
results, zero-sum rating adjustments, group standings and knockout
progression.

Main components:
- scoring: set validation, score parsing and match format resolution
- rating: RPA (Rating Points Algorithm) delta calculator
- lifecycle: match state machine (scheduled -> inProgress -> completed)
- standings: group standings with multi-key tie-breaks
- draw: knockout rounds, bracket maths and champion resolution
- championship: championship points across a whole tournament
- db / services: SQLAlchemy record store and the results service
"""

__version__ = "1.0.0"
