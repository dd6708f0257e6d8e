from .addon_client import AddonClientPort
from .cache import CachePort
from .metadata import MetadataPort
from .player import PlayerPort
from .session_store import SessionStorePort
from .stream_racer import StreamRacerPort
from .watch_history import WatchHistoryPort

__all__ = [
    "AddonClientPort",
    "CachePort",
    "MetadataPort",
    "PlayerPort",
    "SessionStorePort",
    "StreamRacerPort",
    "WatchHistoryPort",
]
