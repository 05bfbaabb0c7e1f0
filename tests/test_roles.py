"""Unit tests for the role catalog and targeting rules."""

from game.roles import (
    ROLE_CONFIGS,
    appears_as_mafia,
    can_target,
    is_mafia_team,
    is_town_team,
    night_action_roles,
    roles_by_team,
    valid_night_targets,
)
from game.rules import NightActionType, PlayerStatus, Role, Team
from game.state import Player


def _p(pid: str, role: Role, alive: bool = True) -> Player:
    return Player(
        id=pid,
        name=pid.title(),
        role=role,
        status=PlayerStatus.ALIVE if alive else PlayerStatus.ELIMINATED,
    )


def test_every_role_has_a_config():
    assert set(ROLE_CONFIGS) == set(Role)
    for role, config in ROLE_CONFIGS.items():
        assert config.role == role


def test_teams():
    assert set(roles_by_team(Team.MAFIA)) == {Role.MAFIA, Role.GODFATHER}
    assert set(roles_by_team(Team.TOWN)) == {Role.DETECTIVE, Role.DOCTOR, Role.CITIZEN}
    assert set(roles_by_team(Team.INDEPENDENT)) == {Role.HOOKER, Role.SILENCER, Role.KAMIKAZE, Role.JOKER}
    assert is_mafia_team(Role.GODFATHER)
    assert not is_town_team(Role.JOKER)


def test_night_action_roles():
    assert set(night_action_roles()) == {
        Role.MAFIA,
        Role.GODFATHER,
        Role.HOOKER,
        Role.DETECTIVE,
        Role.DOCTOR,
        Role.SILENCER,
    }
    assert ROLE_CONFIGS[Role.HOOKER].night_action == NightActionType.ROLEBLOCK


def test_role_unlock_thresholds():
    expected = {
        Role.MAFIA: 4,
        Role.CITIZEN: 4,
        Role.DETECTIVE: 5,
        Role.DOCTOR: 7,
        Role.GODFATHER: 8,
        Role.SILENCER: 9,
        Role.JOKER: 10,
        Role.KAMIKAZE: 11,
        Role.HOOKER: 12,
    }
    assert {r: c.min_players_required for r, c in ROLE_CONFIGS.items()} == expected


def test_mafia_cannot_target_teammates_or_self():
    mafia = _p("m", Role.MAFIA)
    godfather = _p("g", Role.GODFATHER)
    citizen = _p("c", Role.CITIZEN)
    assert not can_target(mafia, mafia)
    assert not can_target(mafia, godfather)
    assert can_target(mafia, citizen)


def test_doctor_may_protect_self():
    doctor = _p("d", Role.DOCTOR)
    assert can_target(doctor, doctor)
    assert can_target(doctor, _p("c", Role.CITIZEN))


def test_detective_cannot_target_self_but_reaches_teammates():
    detective = _p("det", Role.DETECTIVE)
    assert not can_target(detective, detective)
    assert can_target(detective, _p("c", Role.CITIZEN))


def test_dead_targets_excluded():
    mafia = _p("m", Role.MAFIA)
    assert not can_target(mafia, _p("c", Role.CITIZEN, alive=False))


def test_roles_without_night_action_target_nobody():
    citizen = _p("c", Role.CITIZEN)
    assert valid_night_targets(citizen, [_p("m", Role.MAFIA), _p("x", Role.CITIZEN)]) == []


def test_hooker_cannot_block_godfather_or_other_hooker():
    hooker = _p("h", Role.HOOKER)
    players = [hooker, _p("g", Role.GODFATHER), _p("h2", Role.HOOKER), _p("m", Role.MAFIA), _p("c", Role.CITIZEN)]
    assert [p.id for p in valid_night_targets(hooker, players)] == ["m", "c"]


def test_godfather_reads_as_town():
    detective = _p("det", Role.DETECTIVE)
    godfather = _p("g", Role.GODFATHER)
    assert can_target(detective, godfather)
    assert appears_as_mafia(godfather.role) is False
    assert appears_as_mafia(Role.MAFIA) is True
    assert appears_as_mafia(Role.SILENCER) is False
