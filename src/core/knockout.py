"""
Single elimination bracket for the teams advancing from the group stage.
"""
import copy
import math
from typing import Dict, Iterator, List, Optional, Tuple

from core.exceptions import InconsistentState, InvalidArgument
from core.scores import determine_winner, parse_score

# Ordered from the earliest round to the final
ROUND_KEYS = ['round_of_32', 'round_of_16', 'quarter_finals', 'semi_finals', 'final']

ROUND_BY_SIZE = {
    32: 'round_of_32',
    16: 'round_of_16',
    8: 'quarter_finals',
    4: 'semi_finals',
    2: 'final',
}

MAX_BRACKET_SIZE = 32


def calculate_bracket_size(num_teams: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_teams <= 0:
        return 0
    return 2 ** math.ceil(math.log2(num_teams))


def _generate_bracket_order(bracket_size: int) -> List[int]:
    """
    Generate the standard tournament bracket order.

    For 8 teams: [1, 8, 4, 5, 2, 7, 3, 6], i.e. 1v8, 4v5, 2v7, 3v6, so the
    top two seeds can only meet in the final.
    """
    if bracket_size == 2:
        return [1, 2]

    upper_half = _generate_bracket_order(bracket_size // 2)
    lower_half = [bracket_size + 1 - seed for seed in upper_half]

    result = []
    for u, l in zip(upper_half, lower_half):
        result.extend([u, l])
    return result


def iter_matches(knockout: Dict) -> Iterator[Tuple[str, int, Dict]]:
    """Yield (round_key, index, match) for every match, earliest round first."""
    for key in ROUND_KEYS:
        for index, match in enumerate(knockout.get(key) or []):
            yield key, index, match


def _find_match(knockout: Dict, match_id: str) -> Tuple[str, int, Dict]:
    for key, index, match in iter_matches(knockout):
        if match['id'] == match_id:
            return key, index, match
    raise InvalidArgument(f"Knockout match '{match_id}' not found")


def _advance_winner(knockout: Dict, index: int, match: Dict):
    """Place the match winner into its slot of the next round's match."""
    if not match['next_match_id']:
        return
    _, _, next_match = _find_match(knockout, match['next_match_id'])
    slot = 'team_a' if index % 2 == 0 else 'team_b'
    next_match[slot] = copy.deepcopy(match['winner'])


def generate_knockout(advancing_teams: List[Dict]) -> Dict:
    """
    Build the whole bracket for teams listed in seed order (first = top seed).

    Later rounds start with empty slots that fill as results are recorded.
    Seeds without an opponent get a bye straight into the next round.
    """
    num_teams = len(advancing_teams)
    if num_teams < 2:
        raise InvalidArgument(f"A knockout needs at least 2 teams, got {num_teams}")

    bracket_size = calculate_bracket_size(num_teams)
    if bracket_size > MAX_BRACKET_SIZE:
        raise InvalidArgument(f"A knockout supports at most {MAX_BRACKET_SIZE} teams, got {num_teams}")

    seed_to_team = {seed: team for seed, team in enumerate(advancing_teams, start=1)}

    round_keys = []
    size = bracket_size
    while size >= 2:
        round_keys.append(ROUND_BY_SIZE[size])
        size //= 2

    knockout = {}
    for round_num, key in enumerate(round_keys):
        next_key = round_keys[round_num + 1] if round_num + 1 < len(round_keys) else None
        num_matches = bracket_size // (2 ** (round_num + 1))
        knockout[key] = [
            {
                'id': f"{key}-{i + 1}",
                'round': key,
                'team_a': None,
                'team_b': None,
                'score': None,
                'played': False,
                'winner': None,
                'next_match_id': f"{next_key}-{i // 2 + 1}" if next_key else None,
                'is_bye': False,
            }
            for i in range(num_matches)
        ]

    bracket_order = _generate_bracket_order(bracket_size)
    first_round = knockout[round_keys[0]]
    for i, match in enumerate(first_round):
        team_a = seed_to_team.get(bracket_order[2 * i])
        team_b = seed_to_team.get(bracket_order[2 * i + 1])
        match['team_a'] = copy.deepcopy(team_a)
        match['team_b'] = copy.deepcopy(team_b)
        if team_a is None or team_b is None:
            match['is_bye'] = True
            match['played'] = True
            match['winner'] = copy.deepcopy(team_a if team_b is None else team_b)
            _advance_winner(knockout, i, match)

    return knockout


def record_knockout_result(knockout: Dict, match_id: str, score: str) -> Dict:
    """Return a copy of the bracket with the result recorded and the winner moved on."""
    sets = parse_score(score)
    updated = copy.deepcopy(knockout)
    _, index, match = _find_match(updated, match_id)

    if match['team_a'] is None or match['team_b'] is None:
        raise InvalidArgument(f"Knockout match '{match_id}' is still waiting for its teams")
    if match['next_match_id']:
        _, _, next_match = _find_match(updated, match['next_match_id'])
        if next_match['played']:
            raise InconsistentState(f"Knockout match '{match['next_match_id']}' has already been played")

    winner_idx, _ = determine_winner(sets)
    if winner_idx is None:
        raise InvalidArgument(f"Knockout match '{match_id}' cannot end in a draw ('{score}')")

    match['score'] = score.strip()
    match['played'] = True
    match['winner'] = copy.deepcopy(match['team_a'] if winner_idx == 0 else match['team_b'])
    _advance_winner(updated, index, match)
    return updated


def champion(knockout: Optional[Dict]) -> Optional[Dict]:
    if not knockout or not knockout.get('final'):
        return None
    return knockout['final'][0].get('winner')
