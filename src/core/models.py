from enum import Enum

from core.exceptions import InvalidTransition


PLAYER_CATEGORIES = ('1ra', '2da', '3ra', '4ta', '5ta', '6ta', '7ma', '8va')


class TournamentStatus(Enum):
    REGISTRATION_OPEN = 'Registration Open'
    UPCOMING = 'Upcoming'
    GROUP_STAGE = 'Group Stage'
    FINAL_STAGE = 'Final Stage'
    FINISHED = 'Finished'


# Group Stage -> Group Stage is a re-draw, which replaces data.groups wholesale.
ALLOWED_TRANSITIONS = {
    TournamentStatus.REGISTRATION_OPEN: {TournamentStatus.UPCOMING, TournamentStatus.GROUP_STAGE},
    TournamentStatus.UPCOMING: {TournamentStatus.GROUP_STAGE},
    TournamentStatus.GROUP_STAGE: {TournamentStatus.GROUP_STAGE, TournamentStatus.FINAL_STAGE},
    TournamentStatus.FINAL_STAGE: {TournamentStatus.FINISHED},
    TournamentStatus.FINISHED: set(),
}


def parse_status(value) -> TournamentStatus:
    """Accept a TournamentStatus or its stored string value."""
    if isinstance(value, TournamentStatus):
        return value
    return TournamentStatus(value)


def check_transition(current, target) -> TournamentStatus:
    """Raise InvalidTransition unless current -> target is allowed. Returns target."""
    current = parse_status(current)
    target = parse_status(target)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(f"Cannot move tournament from '{current.value}' to '{target.value}'")
    return target


class Team:
    def __init__(self, id, name, player_ids=None):
        self.id = id
        self.name = name
        self.player_ids = list(player_ids) if player_ids else []

    @classmethod
    def from_registration(cls, registration):
        return cls(id=registration['id'], name=registration['team_name'],
                   player_ids=registration.get('player_ids', []))

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'player_ids': list(self.player_ids)}

    def __eq__(self, other):
        if not isinstance(other, Team):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"Team(id={self.id}, name={self.name}, player_ids={self.player_ids})"


def empty_tournament_data():
    return {'groups': [], 'knockout': None}
