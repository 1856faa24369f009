"""Client-facing projection of a game and delivery to its connections."""

from typing import TYPE_CHECKING, Any, Dict, List, Optional, TypedDict

if TYPE_CHECKING:
    from pinquiz.services.games.session import GameSession


class PlayerView(TypedDict):
    name: str
    score: int
    answered: bool
    votedForQuizId: Optional[str]


class GameStateView(TypedDict):
    gameId: str
    hostId: str
    status: str
    players: Dict[str, PlayerView]
    currentQuestionIndex: int
    selectedQuizId: Optional[str]
    selectedQuizName: Optional[str]
    quizVotes: Dict[str, int]
    availableQuizzes: List[Dict[str, Any]]


def build_state_snapshot(session: 'GameSession', available_quizzes: List[Dict[str, Any]]) -> GameStateView:
    """Read-only wire view of a session.

    Only the fields listed in ``GameStateView`` leave the server; the
    pending timer, answers in flight and locks never do.
    """
    players: Dict[str, PlayerView] = {
        sid: {
            'name': p.name,
            'score': p.score,
            'answered': p.answered,
            'votedForQuizId': p.voted_for_quiz_id,
        }
        for sid, p in session.players.items()
    }
    return {
        'gameId': session.pin,
        'hostId': session.host_id,
        'status': session.status.value,
        'players': players,
        'currentQuestionIndex': session.current_question_index,
        'selectedQuizId': session.selected_quiz_id,
        'selectedQuizName': session.selected_quiz_name,
        'quizVotes': dict(session.quiz_votes),
        'availableQuizzes': list(available_quizzes),
    }


class SocketIOBroadcaster:
    """Push events to the Socket.IO room named after a game's PIN.

    Safe to call from request handlers and from background tasks.
    """

    def __init__(self, socketio, namespace: str = '/'):
        self._socketio = socketio
        self.namespace = namespace

    def to_session(self, pin: str, event: str, payload: Any = None) -> None:
        if payload is None:
            self._socketio.emit(event, to=pin, namespace=self.namespace)
        else:
            self._socketio.emit(event, payload, to=pin, namespace=self.namespace)

    def close_session(self, pin: str) -> None:
        self._socketio.close_room(pin, namespace=self.namespace)
