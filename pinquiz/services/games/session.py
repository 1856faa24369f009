import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pinquiz.catalog import Question, QuizCatalog, QuizSnapshot
from pinquiz.errors import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from .broadcast import GameStateView, build_state_snapshot
from .scheduler import QuestionTimer, TaskScheduler
from .scoring import final_rankings, score_question


logger = logging.getLogger(__name__)


class GameStatus(str, Enum):
    WAITING = 'waiting'
    QUESTION = 'question'
    RESULTS = 'results'
    GAME_OVER = 'gameOver'


@dataclass
class Player:
    name: str
    score: int = 0
    answered: bool = False
    voted_for_quiz_id: Optional[str] = None


@dataclass(frozen=True)
class GameSettings:
    question_duration: float = 15
    question_grace: float = 0.5
    points_per_correct_answer: int = 100
    nickname_max_length: int = 20

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'GameSettings':
        return cls(
            question_duration=config.get('QUESTION_DURATION_SEC', 15),
            question_grace=config.get('QUESTION_GRACE_SEC', 0.5),
            points_per_correct_answer=config.get('POINTS_PER_CORRECT_ANSWER', 100),
            nickname_max_length=config.get('NICKNAME_MAX_LENGTH', 20),
        )

    @property
    def timer_delay(self) -> float:
        return self.question_duration + self.question_grace


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class GameSession:
    """State machine for one game, from lobby to final scores.

    - Status moves waiting -> question -> results -> question ... -> gameOver;
      reset returns waiting or gameOver to waiting
    - Host-only actions raise AuthorizationError for anyone else
    - Player actions from the wrong role or in the wrong status are
      ignored and return False
    - Every mutation, including timer expiry, runs under one re-entrant
      lock, so handlers and the question timer never interleave
    - At most one QuestionTimer is live; every path out of ``question``
      cancels it before changing state
    """

    def __init__(self, pin: str, host_id: str, catalog: QuizCatalog, broadcaster,
                 scheduler: TaskScheduler, settings: Optional[GameSettings] = None):
        self.pin = pin
        self.host_id = host_id
        self.status = GameStatus.WAITING
        self.selected_quiz_id: Optional[str] = None
        self.selected_quiz_name: Optional[str] = None
        self.players: Dict[str, Player] = {}
        self.quiz_votes: Dict[str, int] = {}
        self.current_question_index = -1
        self.player_answers: Dict[str, int] = {}
        self.closed = False
        self.settings = settings or GameSettings()
        self._catalog = catalog
        self._broadcaster = broadcaster
        self._scheduler = scheduler
        self._timer: Optional[QuestionTimer] = None
        self._lock = threading.RLock()

    # ---- read side ----

    @property
    def pending_timer(self) -> Optional[QuestionTimer]:
        return self._timer

    @property
    def all_answered(self) -> bool:
        """True when every connected player has an answer for the current question."""
        return bool(self.players) and all(sid in self.player_answers for sid in self.players)

    def is_host(self, sid: str) -> bool:
        return sid == self.host_id

    def snapshot(self) -> GameStateView:
        with self._lock:
            return build_state_snapshot(self, self._catalog.list_available())

    def broadcast_state(self) -> None:
        with self._lock:
            self._broadcaster.to_session(self.pin, 'updateGameState', self.snapshot())

    # ---- host actions ----

    def select_quiz(self, sid: str, quiz_id) -> None:
        with self._lock:
            self._require_host(sid, 'select a quiz')
            if self.status != GameStatus.WAITING:
                raise InvalidStateError('Cannot change quiz after the game has started.')
            quiz = self._catalog.get(quiz_id)
            if quiz is None:
                raise NotFoundError(f'Selected quiz (ID: {quiz_id}) not found.')
            self.selected_quiz_id = quiz.id
            self.selected_quiz_name = quiz.name
            logger.info(f"[quiz-select] game={self.pin} quiz={quiz.id} name={quiz.name!r}")
            self.broadcast_state()

    def start(self, sid: str) -> None:
        with self._lock:
            self._require_host(sid, 'start the game')
            if self.status != GameStatus.WAITING:
                raise InvalidStateError('Game is not in a waiting state.')
            if not self.selected_quiz_id:
                raise ValidationError('Please select a quiz before starting.')
            if self._selected_quiz() is None:
                raise NotFoundError('Selected quiz data is not available.')
            if not self.players:
                raise InvalidStateError('Need at least one player to start.')
            logger.info(f"[game-start] game={self.pin} quiz={self.selected_quiz_id} players={len(self.players)}")
            self.status = GameStatus.QUESTION
            self.current_question_index = -1
            self._cancel_timer()
            self._advance_question()

    def next_question(self, sid: str) -> None:
        with self._lock:
            self._require_host(sid, 'advance the question')
            if self.status != GameStatus.RESULTS:
                raise InvalidStateError('Can only advance to next question from results screen.')
            self._cancel_timer()
            self._advance_question()

    def reset(self, sid: str) -> None:
        with self._lock:
            self._require_host(sid, 'reset the game')
            if self.status not in (GameStatus.WAITING, GameStatus.GAME_OVER):
                raise InvalidStateError('Can only reset the game when it is over or waiting for players.')
            self._cancel_timer()
            self.status = GameStatus.WAITING
            self.current_question_index = -1
            self.player_answers = {}
            self.selected_quiz_id = None
            self.selected_quiz_name = None
            self.quiz_votes = {}
            for player in self.players.values():
                player.score = 0
                player.answered = False
                player.voted_for_quiz_id = None
            logger.info(f"[game-reset] game={self.pin}")
            self._broadcaster.to_session(self.pin, 'gameReset')
            self.broadcast_state()

    # ---- player actions ----

    def add_player(self, sid: str, nickname) -> Player:
        """Register a player. The caller broadcasts once the connection is in the room."""
        with self._lock:
            if self.closed:
                raise NotFoundError(f'Game with PIN {self.pin} not found.')
            if self.is_host(sid):
                raise AuthorizationError('The host cannot join as a player.')
            if self.status != GameStatus.WAITING:
                raise InvalidStateError('This game has already started or finished.')
            name = nickname.strip() if isinstance(nickname, str) else ''
            max_length = self.settings.nickname_max_length
            if not 1 <= len(name) <= max_length:
                raise ValidationError(f'Nickname must be between 1 and {max_length} characters.')
            if any(p.name.casefold() == name.casefold() for p in self.players.values()):
                raise ValidationError(f"Nickname '{name}' is already taken in this game.")
            if sid in self.players:
                raise InvalidStateError('You are already in this game.')
            player = Player(name=name)
            self.players[sid] = player
            logger.info(f"[player-join] game={self.pin} sid={sid} name={name!r}")
            return player

    def vote(self, sid: str, quiz_id) -> bool:
        with self._lock:
            player = self.players.get(sid)
            if player is None or self.is_host(sid) or self.status != GameStatus.WAITING:
                logger.debug(f"[vote-ignored] game={self.pin} sid={sid} status={self.status.value}")
                return False
            quiz = self._catalog.get(quiz_id)
            if quiz is None:
                raise ValidationError('Invalid quiz voted for.')
            previous = player.voted_for_quiz_id
            if previous == quiz.id:
                return False
            if previous is not None:
                self._release_vote(previous)
            self.quiz_votes[quiz.id] = self.quiz_votes.get(quiz.id, 0) + 1
            player.voted_for_quiz_id = quiz.id
            logger.debug(f"[vote] game={self.pin} sid={sid} quiz={quiz.id} previous={previous}")
            self.broadcast_state()
            return True

    def submit_answer(self, sid: str, answer_index) -> bool:
        with self._lock:
            player = self.players.get(sid)
            if player is None or self.status != GameStatus.QUESTION:
                return False
            question = self._current_question()
            if question is None:
                return False
            if not _is_int(answer_index) or not 0 <= answer_index < len(question.options):
                raise ValidationError('Invalid answer submitted.')
            if sid in self.player_answers:
                logger.debug(f"[answer-duplicate] game={self.pin} sid={sid}")
                return False
            self.player_answers[sid] = answer_index
            player.answered = True
            if self.all_answered:
                logger.info(f"[early-advance] game={self.pin} question={self.current_question_index}")
                self._cancel_timer()
                self._show_results()
            else:
                self.broadcast_state()
            return True

    def remove_player(self, sid: str) -> Optional[Player]:
        with self._lock:
            player = self.players.pop(sid, None)
            if player is None:
                return None
            if player.voted_for_quiz_id is not None:
                self._release_vote(player.voted_for_quiz_id)
            self.player_answers.pop(sid, None)
            logger.info(f"[player-leave] game={self.pin} sid={sid} name={player.name!r}")
            if self.closed:
                return player
            self.broadcast_state()
            if self.status == GameStatus.QUESTION and not player.answered and self.all_answered:
                logger.info(f"[early-advance] game={self.pin} question={self.current_question_index} after leave")
                self._cancel_timer()
                self._show_results()
            return player

    # ---- lifecycle ----

    def host_left(self) -> None:
        with self._lock:
            if self.closed:
                return
            logger.info(f"[host-left] game={self.pin} host={self.host_id}")
            self._broadcaster.to_session(self.pin, 'hostDisconnected')
            self.close()

    def close(self) -> None:
        """Stop the session for good; late actions and timers become no-ops."""
        with self._lock:
            self.closed = True
            self._cancel_timer()

    # ---- transitions ----

    def _advance_question(self) -> None:
        quiz = self._selected_quiz()
        if quiz is None:
            logger.error(f"[next-question] game={self.pin} quiz={self.selected_quiz_id} unavailable, ending game")
            self._end_game()
            return
        self.current_question_index += 1
        if self.current_question_index >= quiz.question_count:
            self._end_game()
            return

        self.status = GameStatus.QUESTION
        self.player_answers = {}
        for player in self.players.values():
            player.answered = False
        question = quiz.questions[self.current_question_index]
        payload = {
            'gameId': self.pin,
            'index': self.current_question_index,
            'text': question.text,
            'options': list(question.options),
            'duration': self.settings.question_duration,
        }
        if self.current_question_index == 0:
            payload['fullQuizData'] = quiz.question_data()
        logger.info(f"[question] game={self.pin} index={self.current_question_index}/{quiz.question_count}")
        self._broadcaster.to_session(self.pin, 'showQuestion', payload)
        self.broadcast_state()
        self._arm_timer()

    def _show_results(self) -> None:
        if self.status != GameStatus.QUESTION:
            self._cancel_timer()
            return
        question = self._current_question()
        if question is None:
            self._end_game()
            return
        self.status = GameStatus.RESULTS
        self._cancel_timer()
        scores = score_question(self.players, self.player_answers, question,
                                self.settings.points_per_correct_answer)
        logger.info(f"[results] game={self.pin} question={self.current_question_index} answers={len(self.player_answers)}/{len(self.players)}")
        self._broadcaster.to_session(self.pin, 'showResults', {
            'gameId': self.pin,
            'questionIndex': self.current_question_index,
            'correctAnswer': question.correct_answer_index,
            'scores': scores,
        })
        self.broadcast_state()

    def _end_game(self) -> None:
        if self.status == GameStatus.GAME_OVER:
            return
        self.status = GameStatus.GAME_OVER
        self._cancel_timer()
        rankings = final_rankings(self.players)
        logger.info(f"[game-over] game={self.pin} players={len(rankings)}")
        self._broadcaster.to_session(self.pin, 'gameOver', {'gameId': self.pin, 'scores': rankings})
        self.broadcast_state()

    # ---- timer ----

    def _arm_timer(self) -> None:
        self._cancel_timer()
        self._timer = QuestionTimer(
            self._scheduler, self.pin, self.current_question_index,
            self.settings.timer_delay, self._on_timer_expired,
        )
        self._timer.start()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer_expired(self, timer: QuestionTimer) -> None:
        with self._lock:
            if (timer is not self._timer or timer.cancelled or self.closed
                    or self.status != GameStatus.QUESTION
                    or self.current_question_index != timer.question_index):
                logger.info(
                    f"[timer-abort] game={self.pin} expected_question={timer.question_index} "
                    f"actual_status={self.status.value} actual_question={self.current_question_index}"
                )
                return
            self._timer = None
            self._show_results()

    # ---- helpers ----

    def _require_host(self, sid: str, action: str) -> None:
        if not self.is_host(sid):
            raise AuthorizationError(f'Only the host can {action}.')

    def _release_vote(self, quiz_id: str) -> None:
        count = self.quiz_votes.get(quiz_id, 0)
        if count > 0:
            self.quiz_votes[quiz_id] = count - 1

    def _selected_quiz(self) -> Optional[QuizSnapshot]:
        if not self.selected_quiz_id:
            return None
        return self._catalog.get(self.selected_quiz_id)

    def _current_question(self) -> Optional[Question]:
        quiz = self._selected_quiz()
        if quiz is None or not 0 <= self.current_question_index < quiz.question_count:
            return None
        return quiz.questions[self.current_question_index]
