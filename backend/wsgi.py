try:
    from backend.census.server import create_app
except ImportError:  # pragma: no cover
    from census.server import create_app

app, socketio = create_app()
