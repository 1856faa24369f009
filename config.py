import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///pinquiz.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Comma separated list of origins allowed for HTTP and Socket.IO
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000')
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    # Question timer (seconds); the grace is added to the server-side timeout
    QUESTION_DURATION_SEC = int(os.environ.get('QUESTION_DURATION_SEC', '15'))
    QUESTION_GRACE_SEC = float(os.environ.get('QUESTION_GRACE_SEC', '0.5'))
    POINTS_PER_CORRECT_ANSWER = int(os.environ.get('POINTS_PER_CORRECT_ANSWER', '100'))
    NICKNAME_MAX_LENGTH = int(os.environ.get('NICKNAME_MAX_LENGTH', '20'))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
