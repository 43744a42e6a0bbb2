"""
Draw groups from a YAML team list and print the fixtures.

Usage:
    python src/generate_groups.py data/teams.yaml --per-group 3
    python src/generate_groups.py data/teams.yaml --per-group 4 --seed 7

teams.yaml is a list whose entries are either a team name or a mapping
with 'name' and optionally 'id' and 'player_ids'.
"""
import argparse
import random
import sys

import yaml

from core.exceptions import TournamentError
from core.groups import generate_groups
from storage import slugify


def load_teams(file_path):
    with open(file_path, mode='r', encoding='utf-8') as file:
        entries = yaml.safe_load(file) or []

    teams = []
    for entry in entries:
        if isinstance(entry, str):
            entry = {'name': entry}
        teams.append({
            'id': str(entry.get('id') or slugify(entry['name'])),
            'name': entry['name'],
            'player_ids': list(entry.get('player_ids') or []),
        })
    return teams


def format_groups(groups):
    lines = []
    for group in groups:
        if lines:
            lines.append('')
        lines.append(f"# {group['name']}")
        for match in group['matches']:
            lines.append(f"{match['team_a']['name']} vs {match['team_b']['name']}")
    return '\n'.join(lines)


def main(argv=None):
    parser = argparse.ArgumentParser(description='Draw tournament groups and print round-robin fixtures.')
    parser.add_argument('teams_file', help='YAML file with the list of teams')
    parser.add_argument('--per-group', type=int, default=4, help='Teams per group (default: 4)')
    parser.add_argument('--seed', type=int, default=None, help='Random seed for a reproducible draw')
    args = parser.parse_args(argv)

    teams = load_teams(args.teams_file)
    if not teams:
        print(f"No teams loaded. Check {args.teams_file}", file=sys.stderr)
        return 1

    rng = random.Random(args.seed) if args.seed is not None else None
    try:
        groups = generate_groups(teams, args.per_group, rng=rng)
    except TournamentError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(format_groups(groups))
    return 0


if __name__ == '__main__':
    sys.exit(main())
