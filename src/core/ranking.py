"""
Ranking points: award points for how far each team got in a tournament and
merge them into the per-category rankings.

Both functions are pure. Persisting the merged rankings (and making sure a
tournament is only merged once) is up to the caller, see storage.RankingStore.
"""
from typing import Dict, List, Optional

from core.exceptions import InconsistentState, InvalidArgument
from core.knockout import champion, iter_matches
from core.models import TournamentStatus, parse_status

# Deepest stage last
STAGES = ['group_stage', 'round_of_32', 'round_of_16', 'quarter_finals',
          'semi_finals', 'final', 'champion']

DEFAULT_POINT_TABLE = {
    'champion': 1000,
    'final': 600,
    'semi_finals': 360,
    'quarter_finals': 180,
    'round_of_16': 90,
    'round_of_32': 45,
    'group_stage': 10,
}


def resolve_point_table(overrides: Optional[Dict] = None) -> Dict[str, int]:
    """Merge overrides over the default table, rejecting unknown stages and negative points."""
    table = dict(DEFAULT_POINT_TABLE)
    for stage, points in (overrides or {}).items():
        if stage not in table:
            raise InvalidArgument(f"Unknown stage '{stage}' in point table")
        if isinstance(points, bool) or not isinstance(points, int) or points < 0:
            raise InvalidArgument(f"Points for '{stage}' must be a non-negative integer, got {points!r}")
        table[stage] = points
    return table


def _check_tournament_data(tournament: Dict) -> TournamentStatus:
    try:
        status = parse_status(tournament.get('status'))
    except ValueError:
        raise InconsistentState(f"Unknown tournament status {tournament.get('status')!r}")

    if status in (TournamentStatus.REGISTRATION_OPEN, TournamentStatus.UPCOMING):
        raise InconsistentState(f"Tournament is still in '{status.value}', no draw has been made")

    data = tournament.get('data') or {}
    groups = data.get('groups')
    if not groups:
        raise InconsistentState(f"Tournament in '{status.value}' has no groups")
    for group in groups:
        if not isinstance(group, dict) or 'teams' not in group or 'matches' not in group:
            raise InconsistentState("Group data is incomplete (missing teams or matches)")

    knockout = data.get('knockout')
    if status in (TournamentStatus.FINAL_STAGE, TournamentStatus.FINISHED) and not knockout:
        raise InconsistentState(f"Tournament in '{status.value}' has no knockout bracket")
    if status == TournamentStatus.FINISHED and champion(knockout) is None:
        raise InconsistentState("Tournament is finished but the final has no winner")
    return status


def team_stages(tournament: Dict) -> Dict[str, str]:
    """Map every participating team id to the deepest stage it reached."""
    stages = {}

    def reach(team, stage):
        if team is None:
            return
        current = stages.get(team['id'])
        if current is None or STAGES.index(stage) > STAGES.index(current):
            stages[team['id']] = stage

    data = tournament.get('data') or {}
    for group in data.get('groups') or []:
        for team in group['teams']:
            reach(team, 'group_stage')

    knockout = data.get('knockout') or {}
    for round_key, _, match in iter_matches(knockout):
        reach(match.get('team_a'), round_key)
        reach(match.get('team_b'), round_key)
    reach(champion(knockout), 'champion')
    return stages


def calculate_tournament_points(tournament: Dict, point_table: Optional[Dict] = None) -> Dict[str, int]:
    """
    Points per player id for a tournament, based on the deepest stage each
    player's team reached. Teammates always get the same points; players on
    no participating team get no entry.

    Raises InconsistentState when the groups/knockout data does not support
    the tournament's status.
    """
    table = resolve_point_table(point_table)
    _check_tournament_data(tournament)

    teams_by_id = {}
    for group in tournament['data']['groups']:
        for team in group['teams']:
            teams_by_id[team['id']] = team
    for team in tournament.get('teams') or []:
        teams_by_id[team['id']] = team

    points = {}
    for team_id, stage in team_stages(tournament).items():
        team = teams_by_id.get(team_id)
        if team is None:
            continue
        award = table[stage]
        for player_id in team.get('player_ids') or []:
            # A player entered twice keeps the better result
            if player_id not in points or award > points[player_id]:
                points[player_id] = award
    return points


def collect_player_names(tournament: Dict) -> Dict[str, str]:
    """Player display names from the tournament's approved registrations."""
    names = {}
    for registration in tournament.get('registrations') or []:
        if registration.get('status') != 'approved':
            continue
        for detail in registration.get('player_details') or []:
            if detail.get('name'):
                names[detail['id']] = detail['name']
    return names


def _merge_category(ranking: Dict, new_points: Dict[str, int], names: Dict[str, str]) -> Dict:
    players = [dict(entry) for entry in ranking.get('players') or []]
    by_id = {entry['player_id']: entry for entry in players}

    for player_id, points in new_points.items():
        entry = by_id.get(player_id)
        if entry is not None:
            entry['points'] += points
            if names.get(player_id):
                entry['name'] = names[player_id]
        else:
            entry = {'player_id': player_id, 'name': names.get(player_id, player_id), 'points': points}
            players.append(entry)
            by_id[player_id] = entry

    return {**ranking, 'players': players}


def update_rankings_with_points(existing_rankings: List[Dict], new_points: Dict[str, int],
                                category: str, player_names: Optional[Dict[str, str]] = None) -> List[Dict]:
    """
    Add new_points to the ranking of one category and return the new list of rankings.

    Players already ranked accumulate points, new players are appended.
    Rankings of other categories are returned as the same objects. Calling
    this twice for the same tournament counts its points twice.
    """
    if not new_points:
        return list(existing_rankings)

    names = player_names or {}
    result = []
    merged = False
    for ranking in existing_rankings:
        if ranking['category'] == category and not merged:
            result.append(_merge_category(ranking, new_points, names))
            merged = True
        else:
            result.append(ranking)

    if not merged:
        result.append(_merge_category({'category': category, 'players': []}, new_points, names))
    return result
