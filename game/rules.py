"""Game rules and constants for the Mafia party game."""

from enum import Enum


class Role(str, Enum):
    """Player roles in the game."""

    MAFIA = "Mafia"
    GODFATHER = "Godfather"
    DETECTIVE = "Detective"
    DOCTOR = "Doctor"
    CITIZEN = "Citizen"
    SILENCER = "Silencer"
    KAMIKAZE = "Kamikaze"
    JOKER = "Joker"
    HOOKER = "Hooker"


class Team(str, Enum):
    """Team affiliation used by win conditions."""

    MAFIA = "Mafia"
    TOWN = "Town"
    INDEPENDENT = "Independent"


class NightActionType(str, Enum):
    """Night action a role may perform."""

    KILL = "kill"
    PROTECT = "protect"
    INVESTIGATE = "investigate"
    SILENCE = "silence"
    ROLEBLOCK = "roleblock"
    NONE = "none"


class Phase(str, Enum):
    """Current game phase."""

    MODE_SELECT = "ModeSelect"
    SETUP = "Setup"
    DAY = "Day"
    NIGHT = "Night"
    GAME_OVER = "GameOver"


class PlayerStatus(str, Enum):
    ALIVE = "Alive"
    ELIMINATED = "Eliminated"


class Winner(str, Enum):
    """Outcome of a win-condition check; NONE while the game goes on."""

    MAFIA = "Mafia"
    TOWN = "Town"
    JOKER = "Joker"
    NONE = "none"


class GameMode(str, Enum):
    """How the match is played (chosen on the mode selection screen)."""

    OFFLINE = "offline"
    LOCAL_MULTIPLAYER = "local_multiplayer"
    ONLINE = "online"


class AssignmentMode(str, Enum):
    RECOMMENDED = "recommended"
    CUSTOM = "custom"


# Minimum / maximum players to start
MIN_PLAYERS = 4
MAX_PLAYERS = 20

# Night turn order for the multiplayer host (mafia kill first)
NIGHT_ACTION_ORDER = (
    Role.GODFATHER,
    Role.MAFIA,
    Role.HOOKER,
    Role.DETECTIVE,
    Role.DOCTOR,
    Role.SILENCER,
)

# Roles a host may pick by hand in custom assignment mode
CUSTOM_ASSIGNABLE_ROLES = (
    Role.DETECTIVE,
    Role.DOCTOR,
    Role.SILENCER,
    Role.KAMIKAZE,
    Role.JOKER,
    Role.GODFATHER,
    Role.HOOKER,
)

# Seconds an awaited role gets to submit its night action before it is skipped
NIGHT_ACTION_TIMEOUT_SECONDS = 60.0

# Seconds between sweeps of abandoned relay sessions
SESSION_SWEEP_INTERVAL_SECONDS = 60.0
