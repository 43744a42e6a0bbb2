"""
Padel score strings, e.g. "6-2, 6-3" or "6-4, 3-6, 7-5".
"""
import re
from typing import List, Optional, Tuple

from core.exceptions import InvalidArgument

_SET_PATTERN = re.compile(r'^\s*(\d+)\s*-\s*(\d+)\s*$')


def parse_score(score: str) -> List[Tuple[int, int]]:
    """Parse a comma-separated score string into (team_a, team_b) games per set."""
    if not isinstance(score, str):
        raise InvalidArgument(f"Score must be a string, got {score!r}")
    if not score.strip():
        raise InvalidArgument("Score is empty")

    sets = []
    for part in score.split(','):
        match = _SET_PATTERN.match(part)
        if not match:
            raise InvalidArgument(f"Invalid set score '{part.strip()}' in '{score}'")
        sets.append((int(match.group(1)), int(match.group(2))))
    return sets


def determine_winner(sets) -> Tuple[Optional[int], Tuple[int, int]]:
    """Determine winner from set scores. Returns (winner_index, set_wins).

    winner_index is 0 for team A, 1 for team B, None for a draw.
    """
    if not sets:
        return None, (0, 0)

    wins = [0, 0]
    for games_a, games_b in sets:
        if games_a > games_b:
            wins[0] += 1
        elif games_b > games_a:
            wins[1] += 1

    # Split sets ("6-4, 4-6") with no deciding set count as a draw
    if wins[0] > wins[1]:
        return 0, tuple(wins)
    elif wins[1] > wins[0]:
        return 1, tuple(wins)

    return None, tuple(wins)


def game_totals(sets) -> Tuple[int, int]:
    return sum(s[0] for s in sets), sum(s[1] for s in sets)
