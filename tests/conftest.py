"""
Shared pytest fixtures for the padel tournament engine tests.
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.groups import generate_round_robin
from core.knockout import generate_knockout, record_knockout_result
from core.standings import calculate_group_standings


class NoShuffle:
    """Random source that leaves the team order untouched."""

    def shuffle(self, items):
        pass


def make_team(number):
    return {
        'id': f"t{number}",
        'name': f"Team {number}",
        'player_ids': [f"p{2 * number - 1}", f"p{2 * number}"],
    }


def make_played_group(name, teams, index=0):
    """A group where every match is played and team_a always wins."""
    matches = generate_round_robin(index, teams)
    for match in matches:
        match['score'] = '6-2, 6-3'
        match['played'] = True
    group = {'name': name, 'teams': teams, 'matches': matches}
    group['standings'] = calculate_group_standings(group)
    return group


@pytest.fixture
def no_shuffle():
    return NoShuffle()


@pytest.fixture
def sample_teams():
    """Five teams A-E, two players each."""
    return [
        {'id': 'A', 'name': 'Team A', 'player_ids': ['a1', 'a2']},
        {'id': 'B', 'name': 'Team B', 'player_ids': ['b1', 'b2']},
        {'id': 'C', 'name': 'Team C', 'player_ids': ['c1', 'c2']},
        {'id': 'D', 'name': 'Team D', 'player_ids': ['d1', 'd2']},
        {'id': 'E', 'name': 'Team E', 'player_ids': ['e1', 'e2']},
    ]


@pytest.fixture
def finished_tournament():
    """
    Six teams in two groups of three, Team 1 .. Team 6.

    Knockout (semi-finals): Team 1 beats Team 4, Team 3 beats Team 2,
    Team 1 beats Team 3 in the final. Teams 5 and 6 go out in the groups.
    """
    teams = [make_team(n) for n in range(1, 7)]
    t1, t2, t3, t4, t5, t6 = teams

    knockout = generate_knockout([t1, t3, t2, t4])
    knockout = record_knockout_result(knockout, 'semi_finals-1', '6-2, 6-3')
    knockout = record_knockout_result(knockout, 'semi_finals-2', '6-3, 6-4')
    knockout = record_knockout_result(knockout, 'final-1', '6-4, 3-6, 7-5')

    registrations = [
        {
            'id': team['id'],
            'team_name': team['name'],
            'player_ids': list(team['player_ids']),
            'player_details': [
                {'id': pid, 'name': f"Player {pid[1:]}", 'category': '3ra'} for pid in team['player_ids']
            ],
            'status': 'approved',
        }
        for team in teams
    ]

    return {
        'id': 'spring-open',
        'club_id': 'club-1',
        'name': 'Spring Open',
        'category': '3ra',
        'date': '2026-04-01',
        'status': 'Finished',
        'teams': teams,
        'max_teams': 8,
        'teams_per_group': 3,
        'registrations': registrations,
        'advancing_teams': [t1, t3, t2, t4],
        'points_awarded': False,
        'data': {
            'groups': [
                make_played_group('Group A', [t1, t2, t5], 0),
                make_played_group('Group B', [t3, t4, t6], 1),
            ],
            'knockout': knockout,
        },
    }


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Point the app at a temporary data directory."""
    import app as app_module
    monkeypatch.setattr(app_module, 'DATA_DIR', str(tmp_path))
    return tmp_path


@pytest.fixture
def client(data_dir):
    """Create a test client backed by a temporary data directory."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client
