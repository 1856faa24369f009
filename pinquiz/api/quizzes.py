from flask import Blueprint, jsonify, request, current_app
from sqlalchemy.exc import SQLAlchemyError
from pinquiz import db, current_catalog, current_registry
from pinquiz.catalog import validate_quiz_payload
from pinquiz.errors import QuizValidationError
from pinquiz.models import Quiz


quizzes = Blueprint('quizzes', __name__)


def _refresh_games() -> None:
    """Reload the catalog and push the new quiz list to every lobby."""
    current_catalog().load()
    current_registry().notify_waiting_sessions()


def _not_found():
    return jsonify({'error': 'Quiz not found'}), 404


@quizzes.route('', methods=['GET'])
def list_quizzes():
    rows = Quiz.query.order_by(Quiz.created_at).all()
    return jsonify([q.to_dict() for q in rows])


@quizzes.route('/<string:quiz_id>', methods=['GET'])
def get_quiz(quiz_id):
    quiz = db.session.get(Quiz, quiz_id)
    if not quiz:
        return _not_found()
    payload = quiz.to_dict()
    payload.pop('questionCount')
    return jsonify(payload)


@quizzes.route('', methods=['POST'])
def create_quiz():
    try:
        name, questions = validate_quiz_payload(request.get_json(silent=True))
    except QuizValidationError as exc:
        current_app.logger.warning(f"[quiz-create] rejected: {exc.message}")
        return jsonify({'error': exc.message}), 400

    quiz = Quiz(name=name)
    quiz.set_questions(questions)
    try:
        db.session.add(quiz)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[quiz-create] database error")
        return jsonify({'error': 'Error creating quiz'}), 500

    current_app.logger.info(f"[quiz-create] quiz={quiz.id} name={quiz.name!r} questions={len(questions)}")
    _refresh_games()
    return jsonify({'message': 'Quiz created successfully', 'id': quiz.id}), 201


@quizzes.route('/<string:quiz_id>', methods=['PUT'])
def update_quiz(quiz_id):
    try:
        name, questions = validate_quiz_payload(request.get_json(silent=True))
    except QuizValidationError as exc:
        current_app.logger.warning(f"[quiz-update] quiz={quiz_id} rejected: {exc.message}")
        return jsonify({'error': exc.message}), 400

    quiz = db.session.get(Quiz, quiz_id)
    if not quiz:
        return _not_found()
    quiz.name = name
    quiz.set_questions(questions)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(f"[quiz-update] quiz={quiz_id} database error")
        return jsonify({'error': 'Error updating quiz'}), 500

    current_app.logger.info(f"[quiz-update] quiz={quiz_id} questions={len(questions)}")
    _refresh_games()
    return jsonify({'message': 'Quiz updated successfully'})


@quizzes.route('/<string:quiz_id>', methods=['DELETE'])
def delete_quiz(quiz_id):
    quiz = db.session.get(Quiz, quiz_id)
    if not quiz:
        return _not_found()
    try:
        db.session.delete(quiz)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(f"[quiz-delete] quiz={quiz_id} database error")
        return jsonify({'error': 'Error deleting quiz'}), 500

    current_app.logger.info(f"[quiz-delete] quiz={quiz_id}")
    _refresh_games()
    return jsonify({'message': 'Quiz deleted successfully'})
