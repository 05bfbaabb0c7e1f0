"""Unit tests for role assignment."""

import random
from collections import Counter

import pytest

from game.assignment import assign_roles, custom_roles, mafia_quota, recommended_roles
from game.errors import InvalidCustomConfig, InvalidPlayerCount, InvalidPlayerNames
from game.roles import is_mafia_team
from game.rules import AssignmentMode, MAX_PLAYERS, MIN_PLAYERS, Role
from game.state import CustomRoleConfig


def _names(n: int) -> list[str]:
    return [f"P{i}" for i in range(n)]


@pytest.mark.parametrize("n", range(MIN_PLAYERS, MAX_PLAYERS + 1))
def test_recommended_mafia_quota(n):
    roles = recommended_roles(n)
    assert len(roles) == n
    assert sum(1 for r in roles if is_mafia_team(r)) == max(1, n // 4)


def test_recommended_six_players():
    assert Counter(recommended_roles(6)) == Counter({Role.MAFIA: 1, Role.DETECTIVE: 1, Role.CITIZEN: 4})


def test_recommended_godfather_from_eight():
    assert Role.GODFATHER not in recommended_roles(7)
    roles = recommended_roles(8)
    assert roles.count(Role.GODFATHER) == 1
    assert roles.count(Role.MAFIA) == 1


def test_recommended_twelve_has_every_special_role():
    roles = recommended_roles(12)
    for role in (Role.DETECTIVE, Role.DOCTOR, Role.SILENCER, Role.JOKER, Role.KAMIKAZE, Role.HOOKER, Role.GODFATHER):
        assert role in roles


def test_mafia_quota_minimum_one():
    assert mafia_quota(4) == 1
    assert mafia_quota(7) == 1
    assert mafia_quota(8) == 2


def test_assign_roles_ids_and_names():
    players = assign_roles(_names(6), rng=random.Random(3))
    assert [p.id for p in players] == [f"player_{i}" for i in range(6)]
    assert [p.name for p in players] == _names(6)
    assert all(p.alive for p in players)


def test_assign_roles_preserves_multiset():
    players = assign_roles(_names(10), rng=random.Random(7))
    assert Counter(p.role for p in players) == Counter(recommended_roles(10))


def test_assign_roles_shuffles():
    layouts = {tuple(p.role for p in assign_roles(_names(12), rng=random.Random(seed))) for seed in range(20)}
    assert len(layouts) > 1


def test_assign_roles_unseeded_is_random():
    layouts = {tuple(p.role for p in assign_roles(_names(12))) for _ in range(30)}
    assert len(layouts) > 1


def test_assign_roles_same_seed_same_layout():
    a = assign_roles(_names(9), rng=random.Random(42))
    b = assign_roles(_names(9), rng=random.Random(42))
    assert [p.role for p in a] == [p.role for p in b]


@pytest.mark.parametrize("n", [0, 3, MAX_PLAYERS + 1])
def test_player_count_bounds(n):
    with pytest.raises(InvalidPlayerCount):
        assign_roles(_names(n))


def test_names_must_be_unique_and_non_empty():
    with pytest.raises(InvalidPlayerNames):
        assign_roles(["A", "B", "C", "A"])
    with pytest.raises(InvalidPlayerNames):
        assign_roles(["A", "B", "C", "  "])


def test_custom_roles_fill():
    config = CustomRoleConfig(selected_roles=(Role.DETECTIVE, Role.DOCTOR), total_players=8)
    roles = custom_roles(config)
    counts = Counter(roles)
    assert len(roles) == 8
    assert counts[Role.MAFIA] == 2
    assert counts[Role.DETECTIVE] == 1
    assert counts[Role.DOCTOR] == 1
    assert counts[Role.CITIZEN] == 4


def test_custom_godfather_counts_toward_quota():
    config = CustomRoleConfig(selected_roles=(Role.GODFATHER,), total_players=8)
    counts = Counter(custom_roles(config))
    assert counts[Role.GODFATHER] == 1
    assert counts[Role.MAFIA] == 1


def test_custom_keeps_a_citizen_slot():
    config = CustomRoleConfig(selected_roles=(Role.DETECTIVE, Role.DOCTOR), total_players=4)
    roles = custom_roles(config)
    assert Counter(roles) == Counter({Role.DETECTIVE: 1, Role.DOCTOR: 1, Role.MAFIA: 1, Role.CITIZEN: 1})


def test_custom_too_many_roles():
    config = CustomRoleConfig(selected_roles=(Role.DETECTIVE, Role.DOCTOR, Role.JOKER), total_players=4)
    with pytest.raises(InvalidCustomConfig):
        custom_roles(config)


def test_custom_rejects_unassignable_role():
    config = CustomRoleConfig(selected_roles=(Role.CITIZEN,), total_players=6)
    with pytest.raises(InvalidCustomConfig):
        custom_roles(config)


def test_custom_mode_requires_matching_config():
    with pytest.raises(InvalidCustomConfig):
        assign_roles(_names(6), AssignmentMode.CUSTOM)
    with pytest.raises(InvalidCustomConfig):
        assign_roles(_names(6), AssignmentMode.CUSTOM, CustomRoleConfig((Role.DOCTOR,), total_players=7))
