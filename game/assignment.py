"""Role assignment: turn a list of names into role-bearing players."""

import random
from typing import Optional

from game.errors import InvalidCustomConfig, InvalidPlayerCount, InvalidPlayerNames
from game.roles import ROLE_CONFIGS, is_mafia_team
from game.rules import (
    AssignmentMode,
    CUSTOM_ASSIGNABLE_ROLES,
    MAX_PLAYERS,
    MIN_PLAYERS,
    Role,
)
from game.state import CustomRoleConfig, Player


def mafia_quota(num_players: int) -> int:
    """One mafia per four players, at least one."""
    return max(1, num_players // 4)


def recommended_roles(num_players: int) -> list[Role]:
    """
    Balanced role multiset for num_players (unshuffled).
    Special roles unlock at the player count stored in the role catalog.
    """
    roles: list[Role] = []
    for i in range(mafia_quota(num_players)):
        if i == 0 and num_players >= ROLE_CONFIGS[Role.GODFATHER].min_players_required:
            roles.append(Role.GODFATHER)
        else:
            roles.append(Role.MAFIA)

    for role in (Role.DETECTIVE, Role.DOCTOR, Role.SILENCER, Role.JOKER, Role.KAMIKAZE, Role.HOOKER):
        if num_players >= ROLE_CONFIGS[role].min_players_required:
            roles.append(role)

    roles.extend([Role.CITIZEN] * (num_players - len(roles)))
    return roles


def custom_roles(config: CustomRoleConfig) -> list[Role]:
    """
    Role multiset for custom mode (unshuffled): the selected roles, then
    mafia up to the quota, then citizens. At least one citizen slot is kept.
    """
    selected = list(config.selected_roles)
    total = config.total_players
    for role in selected:
        if role not in CUSTOM_ASSIGNABLE_ROLES:
            raise InvalidCustomConfig(f"{role.value} cannot be picked in custom mode")
    if len(selected) + 2 > total:
        raise InvalidCustomConfig(
            f"{len(selected)} selected roles leave no room for a Mafia and a Citizen among {total} players"
        )

    remaining = total - len(selected)
    selected_mafia = sum(1 for r in selected if is_mafia_team(r))
    num_mafia = min(max(0, mafia_quota(total) - selected_mafia), remaining - 1)

    roles = selected + [Role.MAFIA] * num_mafia
    roles.extend([Role.CITIZEN] * (total - len(roles)))
    return roles


def _validate_names(player_names: list[str]) -> list[str]:
    names = [n.strip() if isinstance(n, str) else "" for n in player_names]
    if any(not n for n in names):
        raise InvalidPlayerNames("Player names must be non-empty")
    if len(set(names)) != len(names):
        raise InvalidPlayerNames("Player names must be unique")
    if len(names) < MIN_PLAYERS:
        raise InvalidPlayerCount(f"At least {MIN_PLAYERS} players required, got {len(names)}")
    if len(names) > MAX_PLAYERS:
        raise InvalidPlayerCount(f"At most {MAX_PLAYERS} players allowed, got {len(names)}")
    return names


def assign_roles(
    player_names: list[str],
    mode: AssignmentMode = AssignmentMode.RECOMMENDED,
    custom_config: Optional[CustomRoleConfig] = None,
    rng: Optional[random.Random] = None,
) -> list[Player]:
    """
    Deal roles to players. The role multiset is shuffled (Fisher-Yates) and
    zipped with the names in order, so seat position says nothing about role.
    """
    names = _validate_names(player_names)

    if mode == AssignmentMode.CUSTOM:
        if custom_config is None:
            raise InvalidCustomConfig("Custom mode requires a role configuration")
        if custom_config.total_players != len(names):
            raise InvalidCustomConfig(
                f"Configuration is for {custom_config.total_players} players, got {len(names)} names"
            )
        roles = custom_roles(custom_config)
    else:
        roles = recommended_roles(len(names))

    rng = rng or random.Random()
    rng.shuffle(roles)

    return [Player(id=f"player_{i}", name=name, role=role) for i, (name, role) in enumerate(zip(names, roles))]
