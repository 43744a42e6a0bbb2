"""
YAML-backed stores for tournaments and per-category rankings.

Layout under the data directory:
    tournaments/<id>.yaml   one file per tournament
    rankings.yaml           {'version': n, 'rankings': [...], 'awarded_tournaments': [...]}
    .lock                   FileLock shared by both stores

Ranking writes carry an optimistic version check: a caller that merged
points into a stale snapshot gets ConcurrentUpdate instead of silently
overwriting another tournament's points.
"""
import logging
import os
import re
from datetime import datetime

import yaml
from filelock import FileLock

from core.exceptions import ConcurrentUpdate, InconsistentState, InvalidArgument, NotFound
from core.models import PLAYER_CATEGORIES, TournamentStatus, empty_tournament_data

logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r'^[a-z0-9][a-z0-9-]*$')


def slugify(name: str) -> str:
    """Convert tournament name to filesystem-safe slug."""
    slug = name.lower().strip()
    slug = re.sub(r'[^a-z0-9\s-]', '', slug)
    slug = re.sub(r'[\s-]+', '-', slug)
    slug = slug.strip('-')
    return slug or 'tournament'


def _write_yaml(path: str, data):
    """Write YAML through a temp file so readers never see a half-written file."""
    tmp_path = path + '.tmp'
    with open(tmp_path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
    os.replace(tmp_path, path)


def make_lock(data_dir: str, timeout: float = 10) -> FileLock:
    os.makedirs(data_dir, exist_ok=True)
    return FileLock(os.path.join(data_dir, '.lock'), timeout=timeout)


class TournamentStore:
    def __init__(self, data_dir, lock=None):
        self.data_dir = data_dir
        self.tournaments_dir = os.path.join(data_dir, 'tournaments')
        self.lock = lock if lock is not None else make_lock(data_dir)
        os.makedirs(self.tournaments_dir, exist_ok=True)

    def _path(self, tournament_id: str) -> str:
        if not tournament_id or not _ID_PATTERN.match(tournament_id):
            raise NotFound(f"Tournament '{tournament_id}' not found")
        return os.path.join(self.tournaments_dir, f"{tournament_id}.yaml")

    def exists(self, tournament_id: str) -> bool:
        try:
            return os.path.exists(self._path(tournament_id))
        except NotFound:
            return False

    def load(self, tournament_id: str) -> dict:
        path = self._path(tournament_id)
        if not os.path.exists(path):
            raise NotFound(f"Tournament '{tournament_id}' not found")
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        if not data:
            raise InconsistentState(f"Tournament file for '{tournament_id}' is empty")
        return data

    def save(self, tournament: dict):
        with self.lock:
            _write_yaml(self._path(tournament['id']), tournament)

    def list(self) -> list:
        tournaments = []
        for filename in sorted(os.listdir(self.tournaments_dir)):
            if not filename.endswith('.yaml'):
                continue
            try:
                tournaments.append(self.load(filename[:-len('.yaml')]))
            except (yaml.YAMLError, InconsistentState, NotFound) as e:
                logger.warning(f'Failed to load tournament {filename}: {e}')
        return tournaments

    def create(self, name: str, club_id: str, category: str, date: str = '',
               max_teams: int = 16, teams_per_group: int = 4) -> dict:
        """Create and persist a new tournament open for registration."""
        if not name or not name.strip():
            raise InvalidArgument('Tournament name is required')
        if category not in PLAYER_CATEGORIES:
            raise InvalidArgument(f"Unknown category '{category}'")
        if teams_per_group <= 0:
            raise InvalidArgument(f"teams_per_group must be positive, got {teams_per_group}")
        if max_teams < 2:
            raise InvalidArgument(f"max_teams must be at least 2, got {max_teams}")

        with self.lock:
            base = slugify(name)
            tournament_id = base
            counter = 2
            while self.exists(tournament_id):
                tournament_id = f"{base}-{counter}"
                counter += 1

            tournament = {
                'id': tournament_id,
                'club_id': club_id,
                'name': name.strip(),
                'category': category,
                'date': date,
                'status': TournamentStatus.REGISTRATION_OPEN.value,
                'teams': [],
                'max_teams': max_teams,
                'teams_per_group': teams_per_group,
                'registrations': [],
                'advancing_teams': None,
                'points_awarded': False,
                'created': datetime.now().isoformat(),
                'data': empty_tournament_data(),
            }
            self.save(tournament)
        return tournament


class RankingStore:
    def __init__(self, data_dir, lock=None):
        self.data_dir = data_dir
        self.path = os.path.join(data_dir, 'rankings.yaml')
        self.lock = lock if lock is not None else make_lock(data_dir)

    def _read(self) -> dict:
        if not os.path.exists(self.path):
            return {'version': 0, 'rankings': [], 'awarded_tournaments': []}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            # Falling back to empty rankings here would wipe them on the next write
            logger.error(f'Failed to parse {self.path}: {e}')
            raise InconsistentState(f'Rankings file is unreadable: {e}')
        data.setdefault('version', 0)
        data.setdefault('rankings', [])
        data.setdefault('awarded_tournaments', [])
        return data

    def load(self):
        """Return (rankings, version). Pass the version back to upsert()."""
        data = self._read()
        return data['rankings'], data['version']

    def load_category(self, category: str):
        rankings, _ = self.load()
        return next((r for r in rankings if r['category'] == category), None)

    def has_awarded(self, tournament_id: str) -> bool:
        return tournament_id in self._read()['awarded_tournaments']

    def upsert(self, ranking: dict, expected_version: int, tournament_id: str = None) -> int:
        """
        Insert or replace the ranking for ranking['category'].

        Raises ConcurrentUpdate if the store changed since expected_version
        was read. When tournament_id is given it is recorded in the same write,
        so has_awarded() and the ranking change can never disagree.
        Returns the new version.
        """
        with self.lock:
            data = self._read()
            if data['version'] != expected_version:
                raise ConcurrentUpdate(
                    f"Rankings changed since version {expected_version} (now {data['version']})")
            if tournament_id is not None and tournament_id in data['awarded_tournaments']:
                raise ConcurrentUpdate(f"Points for tournament '{tournament_id}' were already awarded")

            category = ranking['category']
            if any(r['category'] == category for r in data['rankings']):
                data['rankings'] = [ranking if r['category'] == category else r for r in data['rankings']]
            else:
                data['rankings'].append(ranking)

            data['version'] += 1
            if tournament_id is not None:
                data['awarded_tournaments'].append(tournament_id)
            _write_yaml(self.path, data)
            logger.info(f"Ranking '{ranking['category']}' saved (version {data['version']})")
            return data['version']
