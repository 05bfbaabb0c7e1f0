"""Role catalog: static per-role metadata and targeting rules.

Every other module asks this catalog how a role behaves (team, night action,
who it may target) instead of checking role names itself.
"""

from dataclasses import dataclass
from typing import Iterable

from game.rules import NightActionType, PlayerStatus, Role, Team


@dataclass(frozen=True)
class RoleConfig:
    """Metadata for one role."""

    role: Role
    display_name: str
    team: Team
    description: str
    night_action: NightActionType
    can_target_self: bool
    can_target_teammates: bool
    immune_to: frozenset[Role]
    min_players_required: int


ROLE_CONFIGS: dict[Role, RoleConfig] = {
    Role.MAFIA: RoleConfig(
        role=Role.MAFIA,
        display_name="Mafia",
        team=Team.MAFIA,
        description="Eliminate all non-Mafia players.",
        night_action=NightActionType.KILL,
        can_target_self=False,
        can_target_teammates=False,
        immune_to=frozenset(),
        min_players_required=4,
    ),
    Role.GODFATHER: RoleConfig(
        role=Role.GODFATHER,
        display_name="Godfather",
        team=Team.MAFIA,
        description="Lead the Mafia to victory. Immune to the Detective and the Hooker.",
        night_action=NightActionType.KILL,
        can_target_self=False,
        can_target_teammates=False,
        immune_to=frozenset({Role.DETECTIVE, Role.HOOKER}),
        min_players_required=8,
    ),
    Role.HOOKER: RoleConfig(
        role=Role.HOOKER,
        display_name="Hooker",
        team=Team.INDEPENDENT,
        description="Survive until the end. Block other players' night actions.",
        night_action=NightActionType.ROLEBLOCK,
        can_target_self=False,
        can_target_teammates=False,
        immune_to=frozenset(),
        min_players_required=12,
    ),
    Role.DETECTIVE: RoleConfig(
        role=Role.DETECTIVE,
        display_name="Detective",
        team=Team.TOWN,
        description="Investigate one player per night to find the Mafia.",
        night_action=NightActionType.INVESTIGATE,
        can_target_self=False,
        can_target_teammates=True,
        immune_to=frozenset(),
        min_players_required=5,
    ),
    Role.DOCTOR: RoleConfig(
        role=Role.DOCTOR,
        display_name="Doctor",
        team=Team.TOWN,
        description="Protect one player per night from the Mafia.",
        night_action=NightActionType.PROTECT,
        can_target_self=True,
        can_target_teammates=True,
        immune_to=frozenset(),
        min_players_required=7,
    ),
    Role.CITIZEN: RoleConfig(
        role=Role.CITIZEN,
        display_name="Citizen",
        team=Team.TOWN,
        description="Find and eliminate the Mafia.",
        night_action=NightActionType.NONE,
        can_target_self=False,
        can_target_teammates=False,
        immune_to=frozenset(),
        min_players_required=4,
    ),
    Role.SILENCER: RoleConfig(
        role=Role.SILENCER,
        display_name="Silencer",
        team=Team.INDEPENDENT,
        description="Survive. Silence one player for the following day.",
        night_action=NightActionType.SILENCE,
        can_target_self=False,
        can_target_teammates=True,
        immune_to=frozenset(),
        min_players_required=9,
    ),
    Role.KAMIKAZE: RoleConfig(
        role=Role.KAMIKAZE,
        display_name="Kamikaze",
        team=Team.INDEPENDENT,
        description="Survive, or take someone down with you if voted out.",
        night_action=NightActionType.NONE,
        can_target_self=False,
        can_target_teammates=True,
        immune_to=frozenset(),
        min_players_required=11,
    ),
    Role.JOKER: RoleConfig(
        role=Role.JOKER,
        display_name="Joker",
        team=Team.INDEPENDENT,
        description="Get voted out during the day to win.",
        night_action=NightActionType.NONE,
        can_target_self=False,
        can_target_teammates=False,
        immune_to=frozenset(),
        min_players_required=10,
    ),
}


def get_role_config(role: Role) -> RoleConfig:
    return ROLE_CONFIGS[role]


def roles_by_team(team: Team) -> list[Role]:
    """Return all roles belonging to a team."""
    return [c.role for c in ROLE_CONFIGS.values() if c.team == team]


def night_action_roles() -> list[Role]:
    """Return all roles that act at night."""
    return [c.role for c in ROLE_CONFIGS.values() if c.night_action != NightActionType.NONE]


def is_mafia_team(role: Role) -> bool:
    return ROLE_CONFIGS[role].team == Team.MAFIA


def is_town_team(role: Role) -> bool:
    return ROLE_CONFIGS[role].team == Team.TOWN


def _same_side(actor_role: Role, target_role: Role) -> bool:
    # Independents have no team; only the same role counts as a teammate.
    actor_team = ROLE_CONFIGS[actor_role].team
    if actor_team == Team.INDEPENDENT:
        return actor_role == target_role
    return actor_team == ROLE_CONFIGS[target_role].team


def can_target(actor, target) -> bool:
    """
    True if actor may aim its night action at target.
    Immune targets are excluded, except that investigation still reaches them
    (they just read as town, see appears_as_mafia).
    """
    config = ROLE_CONFIGS[actor.role]
    if config.night_action == NightActionType.NONE:
        return False
    if target.status != PlayerStatus.ALIVE:
        return False
    if target.id == actor.id:
        return config.can_target_self
    if not config.can_target_teammates and _same_side(actor.role, target.role):
        return False
    if actor.role in ROLE_CONFIGS[target.role].immune_to:
        return config.night_action == NightActionType.INVESTIGATE
    return True


def valid_night_targets(actor, players: Iterable) -> list:
    """Return the players actor may target tonight, in seat order."""
    return [p for p in players if can_target(actor, p)]


def appears_as_mafia(role: Role) -> bool:
    """What an investigation reports for role. Roles immune to the Detective read as town."""
    if Role.DETECTIVE in ROLE_CONFIGS[role].immune_to:
        return False
    return is_mafia_team(role)
