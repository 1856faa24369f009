from pinquiz import db
from datetime import datetime, timezone
import json
import uuid


def generate_quiz_id():
    """Generate an opaque quiz id, stable for the lifetime of the row."""
    return uuid.uuid4().hex


def _utcnow():
    return datetime.now(timezone.utc)


class Quiz(db.Model):
    __tablename__ = 'quiz'
    id = db.Column(db.String(32), primary_key=True, default=generate_quiz_id)
    name = db.Column(db.String(200), nullable=False)
    data = db.Column(db.Text, nullable=False, default='[]')  # JSON-encoded list of questions
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    @property
    def questions(self):
        try:
            questions = json.loads(self.data or '[]')
        except ValueError:
            return []
        return questions if isinstance(questions, list) else []

    def set_questions(self, questions):
        self.data = json.dumps(questions)

    def to_dict(self):
        questions = self.questions
        return {
            'id': self.id,
            'name': self.name,
            'data': questions,
            'questionCount': len(questions),
        }
