"""
Unit tests for knockout bracket generation and advancement.
"""
import copy
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.exceptions import InconsistentState, InvalidArgument
from core.knockout import (
    calculate_bracket_size,
    champion,
    generate_knockout,
    iter_matches,
    record_knockout_result,
    _generate_bracket_order
)

from conftest import make_team


def _teams(n):
    return [make_team(i) for i in range(1, n + 1)]


def _pair(match):
    return (match['team_a']['id'] if match['team_a'] else None,
            match['team_b']['id'] if match['team_b'] else None)


class TestBracketHelpers:
    """Tests for bracket helper functions."""

    def test_calculate_bracket_size_exact_power(self):
        assert calculate_bracket_size(8) == 8
        assert calculate_bracket_size(16) == 16
        assert calculate_bracket_size(4) == 4

    def test_calculate_bracket_size_not_power(self):
        assert calculate_bracket_size(5) == 8
        assert calculate_bracket_size(3) == 4
        assert calculate_bracket_size(12) == 16

    def test_calculate_bracket_size_zero(self):
        assert calculate_bracket_size(0) == 0

    def test_bracket_order_4_teams(self):
        assert _generate_bracket_order(4) == [1, 4, 2, 3]

    def test_bracket_order_8_teams(self):
        # Standard bracket: 1v8, 4v5, 2v7, 3v6
        assert _generate_bracket_order(8) == [1, 8, 4, 5, 2, 7, 3, 6]


class TestGenerateKnockout:
    """Tests for building the bracket."""

    def test_four_teams_semi_finals_and_final(self):
        knockout = generate_knockout(_teams(4))

        assert list(knockout.keys()) == ['semi_finals', 'final']
        assert [_pair(m) for m in knockout['semi_finals']] == [('t1', 't4'), ('t2', 't3')]
        assert _pair(knockout['final'][0]) == (None, None)
        assert knockout['semi_finals'][0]['next_match_id'] == 'final-1'
        assert knockout['semi_finals'][1]['next_match_id'] == 'final-1'
        assert knockout['final'][0]['next_match_id'] is None

    def test_two_teams_straight_to_final(self):
        knockout = generate_knockout(_teams(2))
        assert list(knockout.keys()) == ['final']
        assert _pair(knockout['final'][0]) == ('t1', 't2')

    def test_round_names_for_sixteen(self):
        knockout = generate_knockout(_teams(16))
        assert list(knockout.keys()) == ['round_of_16', 'quarter_finals', 'semi_finals', 'final']
        assert len(knockout['round_of_16']) == 8
        assert len(knockout['quarter_finals']) == 4

    def test_byes_advance_top_seeds(self):
        """Test 6 teams in a bracket of 8: seeds 1 and 2 get byes."""
        knockout = generate_knockout(_teams(6))

        byes = [m for m in knockout['quarter_finals'] if m['is_bye']]
        assert len(byes) == 2
        assert {m['winner']['id'] for m in byes} == {'t1', 't2'}
        for m in byes:
            assert m['played'] is True

        # t1's bye fills the first semi-final's team_a slot
        assert knockout['semi_finals'][0]['team_a']['id'] == 't1'
        assert knockout['semi_finals'][1]['team_a']['id'] == 't2'

    def test_three_teams(self):
        knockout = generate_knockout(_teams(3))
        assert [_pair(m) for m in knockout['semi_finals']] == [('t1', None), ('t2', 't3')]
        assert _pair(knockout['final'][0]) == ('t1', None)

    def test_every_team_placed_once(self):
        for n in range(2, 33):
            knockout = generate_knockout(_teams(n))
            first_round = next(iter(knockout.values()))
            ids = [t['id'] for m in first_round for t in (m['team_a'], m['team_b']) if t]
            assert sorted(ids) == sorted(t['id'] for t in _teams(n))

    def test_too_few_teams(self):
        with pytest.raises(InvalidArgument):
            generate_knockout(_teams(1))

    def test_too_many_teams(self):
        with pytest.raises(InvalidArgument):
            generate_knockout(_teams(33))

    def test_input_not_mutated(self):
        teams = _teams(4)
        before = copy.deepcopy(teams)
        knockout = generate_knockout(teams)
        knockout['semi_finals'][0]['team_a']['name'] = 'Renamed'
        assert teams == before


class TestRecordKnockoutResult:
    """Tests for advancing winners through the bracket."""

    def test_winner_moves_to_next_match(self):
        knockout = generate_knockout(_teams(4))
        knockout = record_knockout_result(knockout, 'semi_finals-1', '6-3, 6-4')
        knockout = record_knockout_result(knockout, 'semi_finals-2', '3-6, 6-7')

        assert knockout['semi_finals'][0]['winner']['id'] == 't1'
        assert knockout['semi_finals'][1]['winner']['id'] == 't3'
        assert _pair(knockout['final'][0]) == ('t1', 't3')

    def test_champion(self):
        knockout = generate_knockout(_teams(2))
        assert champion(knockout) is None
        knockout = record_knockout_result(knockout, 'final-1', '2-6, 6-3, 4-6')
        assert champion(knockout)['id'] == 't2'

    def test_champion_without_bracket(self):
        assert champion(None) is None
        assert champion({}) is None

    def test_correcting_a_result_before_next_round(self):
        knockout = generate_knockout(_teams(4))
        knockout = record_knockout_result(knockout, 'semi_finals-1', '6-3, 6-4')
        knockout = record_knockout_result(knockout, 'semi_finals-1', '3-6, 4-6')
        assert knockout['final'][0]['team_a']['id'] == 't4'

    def test_cannot_change_result_used_downstream(self):
        knockout = generate_knockout(_teams(4))
        knockout = record_knockout_result(knockout, 'semi_finals-1', '6-3, 6-4')
        knockout = record_knockout_result(knockout, 'semi_finals-2', '6-3, 6-4')
        knockout = record_knockout_result(knockout, 'final-1', '6-3, 6-4')
        with pytest.raises(InconsistentState):
            record_knockout_result(knockout, 'semi_finals-1', '3-6, 4-6')

    def test_draw_rejected(self):
        knockout = generate_knockout(_teams(2))
        with pytest.raises(InvalidArgument):
            record_knockout_result(knockout, 'final-1', '6-3, 3-6')

    def test_waiting_for_teams(self):
        knockout = generate_knockout(_teams(4))
        with pytest.raises(InvalidArgument):
            record_knockout_result(knockout, 'final-1', '6-3, 6-4')

    def test_unknown_match(self):
        knockout = generate_knockout(_teams(4))
        with pytest.raises(InvalidArgument):
            record_knockout_result(knockout, 'final-9', '6-3, 6-4')

    def test_does_not_mutate_input(self):
        knockout = generate_knockout(_teams(4))
        before = copy.deepcopy(knockout)
        record_knockout_result(knockout, 'semi_finals-1', '6-3, 6-4')
        assert knockout == before


def test_iter_matches_earliest_round_first():
    knockout = generate_knockout(_teams(8))
    rounds = [key for key, _, _ in iter_matches(knockout)]
    assert rounds == ['quarter_finals'] * 4 + ['semi_finals'] * 2 + ['final']
