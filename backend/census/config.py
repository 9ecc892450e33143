import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Realtime
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Storage (defaults to in-memory)
    REDIS_URL = os.environ.get("REDIS_URL", "")
    ROOM_TTL_SEC = int(os.environ.get("ROOM_TTL_SEC", str(24 * 60 * 60)))

    # Room codes
    ROOM_CODE_LENGTH = int(os.environ.get("ROOM_CODE_LENGTH", "5"))
    ROOM_CODE_ALPHABET = os.environ.get("ROOM_CODE_ALPHABET", "ABCDEFGHJKLMNPQRSTUVWXYZ23456789")
    ROOM_CODE_ATTEMPTS = int(os.environ.get("ROOM_CODE_ATTEMPTS", "10"))

    # Game
    MIN_QUESTION_DURATION_SEC = 15
    MAX_QUESTION_DURATION_SEC = 300
    DEFAULT_QUESTION_DURATION_SEC = int(os.environ.get("DEFAULT_QUESTION_DURATION_SEC", "60"))
    MAX_NAME_LENGTH = int(os.environ.get("MAX_NAME_LENGTH", "32"))
    MAX_QUESTION_LENGTH = int(os.environ.get("MAX_QUESTION_LENGTH", "280"))
