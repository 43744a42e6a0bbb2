"""
Group draw generation: random partition into groups plus round-robin fixtures.
"""
import copy
import math
import random
from itertools import combinations
from typing import Dict, List, Optional

from core.exceptions import InvalidArgument


def group_name(index: int) -> str:
    """Name the group at a zero-based index: Group A .. Group Z, Group AA, Group AB, ..."""
    letters = ''
    n = index + 1
    while n > 0:
        n, remainder = divmod(n - 1, 26)
        letters = chr(65 + remainder) + letters
    return f"Group {letters}"


def empty_standings_row(team: Dict) -> Dict:
    return {
        'team_id': team['id'],
        'name': team['name'],
        'points': 0,
        'played': 0,
        'wins': 0,
        'draws': 0,
        'losses': 0,
    }


def generate_round_robin(group_index: int, teams: List[Dict]) -> List[Dict]:
    """One unplayed match per unordered pair of teams, in list order."""
    matches = []
    for (i, team_a), (j, team_b) in combinations(enumerate(teams), 2):
        matches.append({
            'id': f"m-{group_index}-{i}-{j}",
            'team_a': copy.deepcopy(team_a),
            'team_b': copy.deepcopy(team_b),
            'score': None,
            'played': False,
        })
    return matches


def generate_groups(teams: List[Dict], teams_per_group: int,
                    rng: Optional[random.Random] = None) -> List[Dict]:
    """
    Randomly partition teams into groups of teams_per_group and build each
    group's fixtures and zeroed standings.

    The last group may be smaller than teams_per_group. Pass a seeded
    random.Random as rng for a reproducible draw; the default uses the
    system source.
    """
    if teams_per_group <= 0:
        raise InvalidArgument(f"teams_per_group must be positive, got {teams_per_group}")

    if rng is None:
        rng = random.SystemRandom()

    shuffled = [copy.deepcopy(team) for team in teams]
    rng.shuffle(shuffled)

    num_groups = math.ceil(len(shuffled) / teams_per_group)
    groups = []
    for i in range(num_groups):
        group_teams = shuffled[i * teams_per_group:(i + 1) * teams_per_group]
        if not group_teams:
            continue
        groups.append({
            'name': group_name(len(groups)),
            'teams': group_teams,
            'matches': generate_round_robin(i, group_teams),
            'standings': [empty_standings_row(team) for team in group_teams],
        })
    return groups
