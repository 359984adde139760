"""Backend package for the plaza presence and progression engine."""

from .broadcaster import LoginBroadcaster, Subscription
from .clock import FixedDayClock, SystemDayClock
from .config import PlazaSettings, load_settings
from .errors import NotFoundError, PlazaError, UserNotFoundError
from .ledger import EncounterLedger
from .models import AvatarType, EncounterOutcome, EncounterResult, LoginResult, Profile, Progress, PublicSnapshot
from .progression import level_from_xp, threshold, unlocked_avatars
from .registry import PresenceRegistry
from .sequencer import EncounterSequencer, SequencerEvent, SequencerState
from .store import InMemoryUserStore, UserStore, create_store

__all__ = [
    "AvatarType",
    "create_store",
    "EncounterLedger",
    "EncounterOutcome",
    "EncounterResult",
    "EncounterSequencer",
    "FixedDayClock",
    "InMemoryUserStore",
    "level_from_xp",
    "load_settings",
    "LoginBroadcaster",
    "LoginResult",
    "NotFoundError",
    "PlazaError",
    "PlazaSettings",
    "PresenceRegistry",
    "Profile",
    "Progress",
    "PublicSnapshot",
    "SequencerEvent",
    "SequencerState",
    "Subscription",
    "SystemDayClock",
    "threshold",
    "unlocked_avatars",
    "UserNotFoundError",
    "UserStore",
]
