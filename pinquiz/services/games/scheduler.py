import logging
from typing import Callable, Protocol


logger = logging.getLogger(__name__)


class TaskScheduler(Protocol):
    """The slice of the Socket.IO server used to run deferred work.

    ``flask_socketio.SocketIO`` satisfies it in every async mode
    (threading, eventlet, gevent).
    """

    def start_background_task(self, target, *args, **kwargs): ...

    def sleep(self, seconds=0): ...


class QuestionTimer:
    """Deferred auto-advance for one question of one game.

    - Sleeps for ``delay`` seconds in a background task, then calls
      ``callback(timer)`` unless it was cancelled in the meantime
    - The callback owns the staleness check against the live session
      (status and question index)
    """

    def __init__(self, scheduler: TaskScheduler, pin: str, question_index: int, delay: float,
                 callback: Callable[['QuestionTimer'], None]):
        self.pin = pin
        self.question_index = question_index
        self.delay = delay
        self._scheduler = scheduler
        self._callback = callback
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self) -> None:
        logger.info(f"[timer-set] game={self.pin} question={self.question_index} delay={self.delay}s")
        self._scheduler.start_background_task(self._run)

    def cancel(self) -> None:
        if not self._cancelled:
            self._cancelled = True
            logger.debug(f"[timer-cancel] game={self.pin} question={self.question_index}")

    def _run(self) -> None:
        self._scheduler.sleep(self.delay)
        if self._cancelled:
            logger.debug(f"[timer-abort] game={self.pin} question={self.question_index} cancelled")
            return
        logger.info(f"[timer-fire] game={self.pin} question={self.question_index}")
        try:
            self._callback(self)
        except Exception:
            logger.exception(f"[timer-error] game={self.pin} question={self.question_index}")
