from flask import Blueprint, jsonify
from pinquiz import current_catalog, current_registry

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({
        'message': 'Welcome to the PinQuiz game server!',
        'activeGames': len(current_registry()),
        'quizzes': len(current_catalog()),
    })
