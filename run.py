from pinquiz import create_app, current_registry, socketio

app = create_app()

if __name__ == '__main__':
    # Use SocketIO server to enable websockets in dev
    try:
        socketio.run(app, debug=True)
    finally:
        with app.app_context():
            current_registry().shutdown()
