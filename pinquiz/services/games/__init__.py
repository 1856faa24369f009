"""Game domain services: session state machine, registry, scoring and timers.

This package contains the game logic imported by the Socket.IO handlers
and HTTP routes, keeping transport concerns separated from core game
mechanics.
"""

from .broadcast import SocketIOBroadcaster, build_state_snapshot
from .registry import GameRegistry
from .scheduler import QuestionTimer
from .session import GameSession, GameSettings, GameStatus, Player

__all__ = [
    'GameRegistry',
    'GameSession',
    'GameSettings',
    'GameStatus',
    'Player',
    'QuestionTimer',
    'SocketIOBroadcaster',
    'build_state_snapshot',
]
