"""
Flask JSON API for padel club tournaments: registrations, group draw,
results, knockout and ranking points.
"""
import os
import random
import uuid

import yaml
from flask import Flask, jsonify, request

from core.exceptions import (ConcurrentUpdate, InconsistentState, InvalidArgument,
                             NotFound, TournamentError)
from core.groups import generate_groups
from core.knockout import generate_knockout, record_knockout_result
from core.models import PLAYER_CATEGORIES, Team, TournamentStatus, check_transition, parse_status
from core.ranking import (calculate_tournament_points, collect_player_names,
                          resolve_point_table, update_rankings_with_points)
from core.standings import record_group_result, select_advancing_teams
from storage import RankingStore, TournamentStore, make_lock

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))

DEFAULT_SETTINGS = {
    'point_table': {},
    'win_points': 3,
    'draw_points': 1,
    'advance_per_group': 2,
    'lock_timeout': 10,
}

ERROR_STATUS = {
    InvalidArgument: 400,
    NotFound: 404,
    InconsistentState: 409,
    ConcurrentUpdate: 409,
}


def load_settings() -> dict:
    """Load engine settings from YAML file, merged over the defaults."""
    path = os.path.join(DATA_DIR, 'settings.yaml')
    if not os.path.exists(path):
        return dict(DEFAULT_SETTINGS)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        app.logger.warning(f'Failed to parse {path}: {e}')
        return dict(DEFAULT_SETTINGS)
    if not data:
        return dict(DEFAULT_SETTINGS)
    if not isinstance(data, dict):
        app.logger.warning(f'Ignoring {path}: expected a mapping, got {type(data).__name__}')
        return dict(DEFAULT_SETTINGS)
    settings = {**DEFAULT_SETTINGS, **data}
    resolve_point_table(settings['point_table'])
    return settings


def get_stores(settings=None):
    """Return (lock, tournament_store, ranking_store) sharing one file lock."""
    settings = settings or load_settings()
    lock = make_lock(DATA_DIR, timeout=settings['lock_timeout'])
    return lock, TournamentStore(DATA_DIR, lock=lock), RankingStore(DATA_DIR, lock=lock)


def _require_status(tournament: dict, *allowed: TournamentStatus):
    status = parse_status(tournament['status'])
    if status not in allowed:
        raise InconsistentState(f"Not allowed while tournament is in '{status.value}'")


def _int_field(data: dict, name: str, default=None) -> int:
    value = data.get(name, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidArgument(f"'{name}' must be an integer, got {value!r}")


def _json_body() -> dict:
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise InvalidArgument('Request body must be a JSON object')
    return data


def _str_field(data: dict, name: str, default: str = '') -> str:
    value = data.get(name, default)
    if value is None:
        return default
    if not isinstance(value, str):
        raise InvalidArgument(f"'{name}' must be a string, got {value!r}")
    return value


@app.errorhandler(TournamentError)
def handle_tournament_error(error):
    status_code = next((code for cls, code in ERROR_STATUS.items() if isinstance(error, cls)), 400)
    app.logger.warning(f'{type(error).__name__}: {error}')
    return jsonify({'success': False, 'error': str(error)}), status_code


# ---------------------------------------------------------------------------
# Tournaments
# ---------------------------------------------------------------------------

@app.route('/api/tournaments', methods=['GET'])
def api_list_tournaments():
    _, tournaments, _ = get_stores()
    return jsonify({'success': True, 'tournaments': tournaments.list()})


@app.route('/api/tournaments', methods=['POST'])
def api_create_tournament():
    data = _json_body()
    _, tournaments, _ = get_stores()
    tournament = tournaments.create(
        name=_str_field(data, 'name'),
        club_id=_str_field(data, 'club_id'),
        category=_str_field(data, 'category'),
        date=_str_field(data, 'date'),
        max_teams=_int_field(data, 'max_teams', 16),
        teams_per_group=_int_field(data, 'teams_per_group', 4),
    )
    app.logger.info(f"Tournament '{tournament['id']}' created ({tournament['category']})")
    return jsonify({'success': True, 'tournament': tournament}), 201


@app.route('/api/tournaments/<tournament_id>', methods=['GET'])
def api_get_tournament(tournament_id):
    _, tournaments, _ = get_stores()
    return jsonify({'success': True, 'tournament': tournaments.load(tournament_id)})


# ---------------------------------------------------------------------------
# Registrations
# ---------------------------------------------------------------------------

@app.route('/api/tournaments/<tournament_id>/registrations', methods=['POST'])
def api_request_registration(tournament_id):
    """A pair of players asks to enter the tournament; the club approves or rejects later."""
    data = _json_body()
    team_name = _str_field(data, 'team_name').strip()
    players = data.get('players') or []

    if not team_name:
        raise InvalidArgument('Team name is required')
    if not isinstance(players, list) or len(players) != 2:
        raise InvalidArgument('A team needs exactly two players')
    if not all(isinstance(p, dict) for p in players):
        raise InvalidArgument('Each player must be an object with id, name and category')
    player_ids = [p.get('id') for p in players]
    if not all(isinstance(pid, str) and pid for pid in player_ids):
        raise InvalidArgument('Every player needs a string id')
    if player_ids[0] == player_ids[1]:
        raise InvalidArgument('A player cannot partner with themselves')
    for p in players:
        if p.get('category') not in PLAYER_CATEGORIES:
            raise InvalidArgument(f"Unknown category {p.get('category')!r} for player '{p['id']}'")

    lock, tournaments, _ = get_stores()
    with lock:
        tournament = tournaments.load(tournament_id)
        _require_status(tournament, TournamentStatus.REGISTRATION_OPEN)
        registration = {
            'id': f"reg-{uuid.uuid4().hex[:10]}",
            'tournament_id': tournament_id,
            'team_name': team_name,
            'player_ids': player_ids,
            'player_details': [
                {'id': p['id'], 'name': _str_field(p, 'name'), 'category': p['category']} for p in players
            ],
            'status': 'pending',
        }
        tournament['registrations'].append(registration)
        tournaments.save(tournament)
    return jsonify({'success': True, 'registration': registration}), 201


@app.route('/api/tournaments/<tournament_id>/registrations/<registration_id>/<action>', methods=['POST'])
def api_registration_action(tournament_id, registration_id, action):
    if action not in ('approve', 'reject'):
        raise InvalidArgument(f"Unknown registration action '{action}'")

    lock, tournaments, _ = get_stores()
    with lock:
        tournament = tournaments.load(tournament_id)
        registration = next((r for r in tournament['registrations'] if r['id'] == registration_id), None)
        if registration is None:
            raise NotFound(f"Registration '{registration_id}' not found")
        if registration['status'] != 'pending':
            raise InconsistentState(f"Registration '{registration_id}' is already {registration['status']}")

        if action == 'approve':
            _require_status(tournament, TournamentStatus.REGISTRATION_OPEN, TournamentStatus.UPCOMING)
            if len(tournament['teams']) >= tournament['max_teams']:
                raise InconsistentState(f"Tournament is full ({tournament['max_teams']} teams)")
            tournament['teams'].append(Team.from_registration(registration).to_dict())
            registration['status'] = 'approved'
        else:
            registration['status'] = 'rejected'
        tournaments.save(tournament)
    return jsonify({'success': True, 'registration': registration, 'teams': tournament['teams']})


# ---------------------------------------------------------------------------
# Group stage
# ---------------------------------------------------------------------------

@app.route('/api/tournaments/<tournament_id>/groups', methods=['POST'])
def api_generate_groups(tournament_id):
    """Close registration and draw the groups. Drawing again replaces every group."""
    data = _json_body()
    seed = data.get('seed')
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, (int, str))):
        raise InvalidArgument(f"'seed' must be an integer or a string, got {seed!r}")
    rng = random.Random(seed) if seed is not None else None

    lock, tournaments, _ = get_stores()
    with lock:
        tournament = tournaments.load(tournament_id)
        check_transition(tournament['status'], TournamentStatus.GROUP_STAGE)
        if len(tournament['teams']) < 2:
            raise InconsistentState('At least two approved teams are needed for the draw')

        groups = generate_groups(tournament['teams'], tournament['teams_per_group'], rng=rng)
        tournament['data'] = {'groups': groups, 'knockout': None}
        tournament['advancing_teams'] = None
        tournament['status'] = TournamentStatus.GROUP_STAGE.value
        tournaments.save(tournament)

    app.logger.info(f"Tournament '{tournament_id}': drew {len(groups)} groups for {len(tournament['teams'])} teams")
    return jsonify({'success': True, 'groups': groups})


@app.route('/api/tournaments/<tournament_id>/groups/result', methods=['POST'])
def api_group_result(tournament_id):
    data = _json_body()
    match_id = _str_field(data, 'match_id')
    score = _str_field(data, 'score')
    settings = load_settings()

    lock, tournaments, _ = get_stores(settings)
    with lock:
        tournament = tournaments.load(tournament_id)
        _require_status(tournament, TournamentStatus.GROUP_STAGE)
        groups = tournament['data']['groups']
        index = next((i for i, g in enumerate(groups)
                      if any(m['id'] == match_id for m in g['matches'])), None)
        if index is None:
            raise InvalidArgument(f"Match '{match_id}' not found")
        groups[index] = record_group_result(groups[index], match_id, score,
                                            win_points=settings['win_points'],
                                            draw_points=settings['draw_points'])
        tournaments.save(tournament)
    return jsonify({'success': True, 'group': groups[index]})


# ---------------------------------------------------------------------------
# Knockout
# ---------------------------------------------------------------------------

@app.route('/api/tournaments/<tournament_id>/knockout', methods=['POST'])
def api_generate_knockout(tournament_id):
    data = _json_body()
    settings = load_settings()
    per_group = _int_field(data, 'advance_per_group', settings['advance_per_group'])

    lock, tournaments, _ = get_stores(settings)
    with lock:
        tournament = tournaments.load(tournament_id)
        check_transition(tournament['status'], TournamentStatus.FINAL_STAGE)
        advancing = select_advancing_teams(tournament['data']['groups'], per_group)
        knockout = generate_knockout(advancing)
        tournament['advancing_teams'] = advancing
        tournament['data']['knockout'] = knockout
        tournament['status'] = TournamentStatus.FINAL_STAGE.value
        tournaments.save(tournament)

    app.logger.info(f"Tournament '{tournament_id}': knockout with {len(advancing)} teams")
    return jsonify({'success': True, 'advancing_teams': advancing, 'knockout': knockout})


@app.route('/api/tournaments/<tournament_id>/knockout/result', methods=['POST'])
def api_knockout_result(tournament_id):
    data = _json_body()
    lock, tournaments, _ = get_stores()
    with lock:
        tournament = tournaments.load(tournament_id)
        _require_status(tournament, TournamentStatus.FINAL_STAGE)
        knockout = record_knockout_result(tournament['data']['knockout'],
                                          _str_field(data, 'match_id'), _str_field(data, 'score'))
        tournament['data']['knockout'] = knockout
        tournaments.save(tournament)
    return jsonify({'success': True, 'knockout': knockout})


# ---------------------------------------------------------------------------
# Finish and rankings
# ---------------------------------------------------------------------------

@app.route('/api/tournaments/<tournament_id>/finish', methods=['POST'])
def api_finish_tournament(tournament_id):
    """
    Mark the tournament finished and add its points to the category ranking.

    Points are awarded once per tournament. A tournament already flagged
    points_awarded is skipped, and the ranking store records the tournament
    id in the same write as the new ranking, so a retry after a failed
    tournament save does not count the points again.
    """
    settings = load_settings()
    lock, tournaments, rankings = get_stores(settings)
    with lock:
        tournament = tournaments.load(tournament_id)
        check_transition(tournament['status'], TournamentStatus.FINISHED)

        finished = {**tournament, 'status': TournamentStatus.FINISHED.value}
        points = calculate_tournament_points(finished, settings['point_table'])
        category = tournament['category']

        if tournament.get('points_awarded') or rankings.has_awarded(tournament_id):
            app.logger.warning(f"Tournament '{tournament_id}': points already in the ranking, not adding again")
        elif points:
            current, version = rankings.load()
            merged = update_rankings_with_points(current, points, category,
                                                 collect_player_names(tournament))
            ranking = next(r for r in merged if r['category'] == category)
            rankings.upsert(ranking, version, tournament_id=tournament_id)

        finished['points_awarded'] = True
        tournaments.save(finished)

    app.logger.info(f"Tournament '{tournament_id}' finished: {len(points)} players ranked in {category}")
    return jsonify({'success': True, 'points': points, 'tournament': finished})


@app.route('/api/rankings', methods=['GET'])
def api_rankings():
    _, _, rankings = get_stores()
    current, version = rankings.load()
    return jsonify({'success': True, 'rankings': current, 'version': version})


@app.route('/api/rankings/<category>', methods=['GET'])
def api_ranking_category(category):
    """Ranking for one category, highest points first."""
    if category not in PLAYER_CATEGORIES:
        raise NotFound(f"Unknown category '{category}'")
    _, _, rankings = get_stores()
    ranking = rankings.load_category(category) or {'category': category, 'players': []}
    players = sorted(ranking['players'], key=lambda p: (-p['points'], p['name']))
    return jsonify({'success': True, 'category': category, 'players': players})


if __name__ == '__main__':
    app.run(debug=True)
