"""
Group standings and selection of the teams that advance to the knockout stage.
"""
import copy
from typing import Dict, List

from core.exceptions import InconsistentState, InvalidArgument
from core.groups import empty_standings_row
from core.scores import determine_winner, game_totals, parse_score


def calculate_group_standings(group: Dict, win_points: int = 3, draw_points: int = 1) -> List[Dict]:
    """
    Rebuild the standings rows of a group from its played matches.

    Ranking: points -> wins -> set difference -> game difference -> draw order
    """
    rows = {team['id']: empty_standings_row(team) for team in group['teams']}
    set_diff = {team_id: 0 for team_id in rows}
    game_diff = {team_id: 0 for team_id in rows}

    for match in group['matches']:
        if not match.get('played') or not match.get('score'):
            continue
        team_a = match['team_a']['id']
        team_b = match['team_b']['id']
        if team_a not in rows or team_b not in rows:
            continue

        sets = parse_score(match['score'])
        winner_idx, (sets_a, sets_b) = determine_winner(sets)
        games_a, games_b = game_totals(sets)

        rows[team_a]['played'] += 1
        rows[team_b]['played'] += 1
        set_diff[team_a] += sets_a - sets_b
        set_diff[team_b] += sets_b - sets_a
        game_diff[team_a] += games_a - games_b
        game_diff[team_b] += games_b - games_a

        if winner_idx is None:
            for team_id in (team_a, team_b):
                rows[team_id]['draws'] += 1
                rows[team_id]['points'] += draw_points
        else:
            winner, loser = (team_a, team_b) if winner_idx == 0 else (team_b, team_a)
            rows[winner]['wins'] += 1
            rows[winner]['points'] += win_points
            rows[loser]['losses'] += 1

    order = {team_id: position for position, team_id in enumerate(rows)}
    return sorted(
        rows.values(),
        key=lambda r: (-r['points'], -r['wins'], -set_diff[r['team_id']],
                       -game_diff[r['team_id']], order[r['team_id']])
    )


def record_group_result(group: Dict, match_id: str, score: str,
                        win_points: int = 3, draw_points: int = 1) -> Dict:
    """Return a copy of the group with the match score recorded and standings recomputed."""
    parse_score(score)
    updated = copy.deepcopy(group)
    match = next((m for m in updated['matches'] if m['id'] == match_id), None)
    if match is None:
        raise InvalidArgument(f"Match '{match_id}' not found in {group['name']}")

    match['score'] = score.strip()
    match['played'] = True
    updated['standings'] = calculate_group_standings(updated, win_points, draw_points)
    return updated


def group_complete(group: Dict) -> bool:
    return all(m.get('played') for m in group['matches'])


def select_advancing_teams(groups: List[Dict], per_group: int) -> List[Dict]:
    """
    Pick the top per_group teams of every group, ordered for seeding.

    All group winners come first (in group order), then all runners-up, etc.
    Requires every group match to have been played.
    """
    if per_group <= 0:
        raise InvalidArgument(f"per_group must be positive, got {per_group}")
    if not groups:
        raise InconsistentState("No groups have been drawn")

    unfinished = [g['name'] for g in groups if not group_complete(g)]
    if unfinished:
        raise InconsistentState(f"Group stage not finished: {', '.join(unfinished)}")

    teams_by_id = {}
    for group in groups:
        for team in group['teams']:
            teams_by_id[team['id']] = team

    advancing = []
    for position in range(per_group):
        for group in groups:
            standings = group['standings']
            if position < len(standings):
                advancing.append(copy.deepcopy(teams_by_id[standings[position]['team_id']]))
    return advancing
