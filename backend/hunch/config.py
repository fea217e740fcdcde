import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Socket.IO async mode ("" picks a default in create_app)
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Room limits
    MAX_PLAYERS = int(os.environ.get("MAX_PLAYERS", "4"))
    MIN_PLAYERS = int(os.environ.get("MIN_PLAYERS", "2"))
    MIN_OPTIONS = int(os.environ.get("MIN_OPTIONS", "2"))
    MAX_OPTIONS = int(os.environ.get("MAX_OPTIONS", "50"))
    MAX_NAME_LENGTH = int(os.environ.get("MAX_NAME_LENGTH", "30"))
    MAX_NOTES_LENGTH = int(os.environ.get("MAX_NOTES_LENGTH", "2000"))
    ROOM_CODE_LENGTH = int(os.environ.get("ROOM_CODE_LENGTH", "6"))

    # Game
    PAIR_TURN_BUDGET = int(os.environ.get("PAIR_TURN_BUDGET", "6"))
    GUESS_CONFIRMATION = os.environ.get("GUESS_CONFIRMATION", "CONFIRMED")
    REQUIRE_ALL_READY = os.environ.get("REQUIRE_ALL_READY", "0") == "1"
    DEFAULT_VARIANT = os.environ.get("DEFAULT_VARIANT", "per_target")
    DEFAULT_TURN_MODE = os.environ.get("DEFAULT_TURN_MODE", "round_robin")

    # Seed for secret assignment; empty means system randomness.
    SECRET_SEED = os.environ.get("SECRET_SEED", "")
