try:
    from backend.hunch.server import create_app
except ImportError:  # pragma: no cover
    from hunch.server import create_app

app, socketio = create_app()
