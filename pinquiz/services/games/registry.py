import logging
import random
import threading
from typing import Dict, List, Optional, Tuple

from pinquiz.catalog import QuizCatalog
from pinquiz.errors import InvalidStateError, NotFoundError
from .scheduler import TaskScheduler
from .session import GameSession, GameSettings, GameStatus, Player


logger = logging.getLogger(__name__)

PIN_MIN = 100000
PIN_MAX = 999999


class GameRegistry:
    """Owns every live game of one application and the connections bound to them.

    - One registry per app, created by the application factory and torn
      down with ``shutdown()``
    - A PIN maps to at most one live session; it is released on destroy
    - A connection (Socket.IO sid) is bound to at most one PIN; its role
      there is host if it created the session, player otherwise
    """

    def __init__(self, catalog: QuizCatalog, broadcaster, scheduler: TaskScheduler,
                 settings: Optional[GameSettings] = None, rng: Optional[random.Random] = None):
        self.catalog = catalog
        self.settings = settings or GameSettings()
        self._broadcaster = broadcaster
        self._scheduler = scheduler
        self.rng = rng or random.Random()
        self._sessions: Dict[str, GameSession] = {}
        self._bindings: Dict[str, str] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, pin) -> bool:
        return pin in self._sessions

    def _generate_pin(self) -> str:
        while True:
            pin = str(self.rng.randint(PIN_MIN, PIN_MAX))
            if pin not in self._sessions:
                return pin

    def create(self, host_id: str) -> GameSession:
        with self._lock:
            if host_id in self._bindings:
                raise InvalidStateError('You are already in a game.')
            pin = self._generate_pin()
            session = GameSession(pin, host_id, self.catalog, self._broadcaster,
                                  self._scheduler, self.settings)
            self._sessions[pin] = session
            self._bindings[host_id] = pin
        logger.info(f"[game-create] game={pin} host={host_id} quizzes={len(self.catalog)}")
        return session

    def get(self, pin) -> Optional[GameSession]:
        return self._sessions.get(pin)

    def sessions(self) -> List[GameSession]:
        with self._lock:
            return list(self._sessions.values())

    def join(self, sid: str, pin: str, nickname) -> Tuple[GameSession, Player]:
        with self._lock:
            if sid in self._bindings:
                raise InvalidStateError('You are already in a game.')
            session = self._sessions.get(pin)
            if session is None:
                raise NotFoundError(f'Game with PIN {pin} not found.')
            player = session.add_player(sid, nickname)
            self._bindings[sid] = pin
        return session, player

    def session_for(self, sid: str) -> Optional[GameSession]:
        with self._lock:
            pin = self._bindings.get(sid)
            return self._sessions.get(pin) if pin is not None else None

    def unbind(self, sid: str) -> Optional[str]:
        with self._lock:
            return self._bindings.pop(sid, None)

    def destroy(self, pin: str) -> Optional[GameSession]:
        with self._lock:
            session = self._sessions.pop(pin, None)
            if session is None:
                return None
            for sid in [s for s, bound in self._bindings.items() if bound == pin]:
                del self._bindings[sid]
        session.close()
        self._broadcaster.close_session(pin)
        logger.info(f"[game-destroy] game={pin}")
        return session

    def disconnect(self, sid: str) -> None:
        """Apply the effects of a dropped connection to the game it was bound to."""
        pin = self.unbind(sid)
        if pin is None:
            return
        session = self.get(pin)
        if session is None:
            return
        if session.is_host(sid):
            session.host_left()
            self.destroy(pin)
        else:
            session.remove_player(sid)

    def notify_waiting_sessions(self) -> int:
        """Refresh every lobby, e.g. after the quiz list changed."""
        notified = 0
        for session in self.sessions():
            if session.status == GameStatus.WAITING and not session.closed:
                session.broadcast_state()
                notified += 1
        if notified:
            logger.info(f"[notify] refreshed {notified} waiting game(s)")
        return notified

    def shutdown(self) -> None:
        with self._lock:
            pins = list(self._sessions)
        for pin in pins:
            self.destroy(pin)
