from flask import current_app, request
from flask_socketio import emit, join_room
from pinquiz import socketio, current_catalog, current_registry
from pinquiz.errors import AuthorizationError, GameError, ValidationError


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _report(exc: GameError) -> None:
    """Send a rejected action back to the connection that made it, and only to it."""
    current_app.logger.info(f"[rejected] sid={_get_sid()} {type(exc).__name__}: {exc.message}")
    emit('error', exc.message)


def _host_action(action: str, apply) -> None:
    sid = _get_sid()
    session = current_registry().session_for(sid)
    try:
        if session is None:
            raise AuthorizationError(f'Only the host can {action}.')
        apply(session, sid)
    except GameError as exc:
        _report(exc)


def _player_action(apply) -> None:
    sid = _get_sid()
    session = current_registry().session_for(sid)
    if session is None:
        return
    try:
        apply(session, sid)
    except GameError as exc:
        _report(exc)


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected', 'sid': _get_sid()})


def handle_disconnect(reason=None):
    sid = _get_sid()
    current_app.logger.info(f"[disconnect] sid={sid} reason={reason}")
    current_registry().disconnect(sid)


def handle_create_game(_data=None):
    sid = _get_sid()
    try:
        session = current_registry().create(sid)
    except GameError as exc:
        _report(exc)
        return
    join_room(session.pin)
    emit('gameCreated', {
        'gameId': session.pin,
        'hostId': sid,
        'availableQuizzes': current_catalog().list_available(),
    })
    session.broadcast_state()


def handle_select_quiz(quiz_id=None):
    _host_action('select a quiz', lambda session, sid: session.select_quiz(sid, quiz_id))


def handle_start_game(_data=None):
    _host_action('start the game', lambda session, sid: session.start(sid))


def handle_next_question(_data=None):
    _host_action('advance the question', lambda session, sid: session.next_question(sid))


def handle_reset_game(_data=None):
    _host_action('reset the game', lambda session, sid: session.reset(sid))


def handle_player_join(data=None):
    sid = _get_sid()
    data = data if isinstance(data, dict) else {}
    nickname = data.get('nickname')
    pin = data.get('gameId')
    try:
        if not nickname or not pin:
            raise ValidationError('Nickname and Game PIN are required.')
        session, player = current_registry().join(sid, str(pin).strip(), nickname)
    except GameError as exc:
        _report(exc)
        return
    join_room(session.pin)
    emit('joined', {
        'playerId': sid,
        'name': player.name,
        'gameId': session.pin,
        'selectedQuizId': session.selected_quiz_id,
        'selectedQuizName': session.selected_quiz_name,
        'availableQuizzes': current_catalog().list_available(),
        'quizVotes': dict(session.quiz_votes),
        'myVote': None,
    })
    session.broadcast_state()


def handle_vote_for_quiz(quiz_id=None):
    _player_action(lambda session, sid: session.vote(sid, quiz_id))


def handle_answer(answer_index=None):
    _player_action(lambda session, sid: session.submit_answer(sid, answer_index))


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register the game protocol's Socket.IO event handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('host:createGame', handle_create_game, namespace=namespace)
    socketio.on_event('host:selectQuiz', handle_select_quiz, namespace=namespace)
    socketio.on_event('host:startGame', handle_start_game, namespace=namespace)
    socketio.on_event('host:nextQuestion', handle_next_question, namespace=namespace)
    socketio.on_event('host:resetGame', handle_reset_game, namespace=namespace)
    socketio.on_event('player:join', handle_player_join, namespace=namespace)
    socketio.on_event('player:voteForQuiz', handle_vote_for_quiz, namespace=namespace)
    socketio.on_event('player:answer', handle_answer, namespace=namespace)
