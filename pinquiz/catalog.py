"""Quiz catalog: the in-memory view of the quiz table used by running games.

Games read the catalog synchronously on every transition, so the table is
loaded once into immutable snapshots and reloaded after each write made
through the quiz API. A reload swaps the whole mapping at once.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from pinquiz.errors import QuizValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Question:
    text: str
    options: Tuple[str, ...]
    correct_answer_index: int

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> 'Question':
        return cls(
            text=data['question'],
            options=tuple(data['options']),
            correct_answer_index=data['correctAnswer'],
        )

    def to_wire(self) -> Dict[str, Any]:
        return {
            'question': self.text,
            'options': list(self.options),
            'correctAnswer': self.correct_answer_index,
        }


@dataclass(frozen=True)
class QuizSnapshot:
    id: str
    name: str
    questions: Tuple[Question, ...]

    @property
    def question_count(self) -> int:
        return len(self.questions)

    def question_data(self) -> List[Dict[str, Any]]:
        return [q.to_wire() for q in self.questions]


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_question(data, position: int) -> None:
    """Structural checks only: text, at least two options, an in-range answer."""
    if not isinstance(data, dict):
        raise QuizValidationError(f'Invalid question structure in question {position}.')
    text = data.get('question')
    options = data.get('options')
    correct = data.get('correctAnswer')
    if not isinstance(text, str) or not text.strip():
        raise QuizValidationError(f'Invalid question structure in question {position}.')
    if not isinstance(options, list) or len(options) < 2 or not all(isinstance(o, str) for o in options):
        raise QuizValidationError(f'Invalid question structure in question {position}.')
    if not _is_int(correct) or not 0 <= correct < len(options):
        raise QuizValidationError(f'Invalid question structure in question {position}.')


def validate_quiz_payload(payload) -> Tuple[str, List[Dict[str, Any]]]:
    """Validate a quiz document posted by the editor; return (name, questions)."""
    if not isinstance(payload, dict):
        raise QuizValidationError('Invalid quiz data. Name and at least one question are required.')
    name = payload.get('name')
    questions = payload.get('data')
    if not isinstance(name, str) or not name.strip() or not isinstance(questions, list) or not questions:
        raise QuizValidationError('Invalid quiz data. Name and at least one question are required.')
    for index, question in enumerate(questions):
        validate_question(question, index + 1)
    cleaned = [
        {'question': q['question'], 'options': list(q['options']), 'correctAnswer': q['correctAnswer']}
        for q in questions
    ]
    return name.strip(), cleaned


class QuizCatalog:
    """Read-only lookup of quizzes for the game core."""

    def __init__(self):
        self._quizzes: Dict[str, QuizSnapshot] = {}

    def __len__(self) -> int:
        return len(self._quizzes)

    def replace(self, quizzes: Iterable[QuizSnapshot]) -> None:
        self._quizzes = {quiz.id: quiz for quiz in quizzes}

    def load(self) -> int:
        """(Re)load every quiz from the database. Requires an app context."""
        from pinquiz import db
        from pinquiz.models import Quiz

        try:
            rows = Quiz.query.all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.warning(f"[catalog-load] failed, catalog is empty: {exc}")
            self.replace([])
            return 0

        snapshots = []
        for row in rows:
            try:
                for index, question in enumerate(row.questions):
                    validate_question(question, index + 1)
                snapshots.append(QuizSnapshot(
                    id=row.id,
                    name=row.name,
                    questions=tuple(Question.from_wire(q) for q in row.questions),
                ))
            except QuizValidationError as exc:
                logger.error(f"[catalog-load] skipping quiz={row.id}: {exc.message}")
        self.replace(snapshots)
        logger.info(f"[catalog-load] loaded {len(snapshots)} quizzes")
        return len(snapshots)

    def get(self, quiz_id) -> Optional[QuizSnapshot]:
        if not isinstance(quiz_id, str):
            return None
        return self._quizzes.get(quiz_id)

    def list_available(self) -> List[Dict[str, Any]]:
        return [
            {'id': quiz.id, 'name': quiz.name or f'Unnamed Quiz ({quiz.id})', 'questionCount': quiz.question_count}
            for quiz in self._quizzes.values()
        ]
