from __future__ import annotations

from dataclasses import dataclass

from ..game.boards import PrivateBoard

# Client -> server
ROOM_CREATE = "room:create"
ROOM_JOIN = "room:join"
ROOM_LEAVE = "room:leave"
ROOM_READY = "room:ready"
ROOM_RENAME = "room:rename"
ROOM_CONFIGURE = "room:configure"
ROOM_OPTION_ADD = "room:option_add"
ROOM_OPTION_REMOVE = "room:option_remove"
ROOM_KICK = "room:kick"
GAME_START = "game:start"
GAME_ASK = "game:ask"
GAME_NEXT_TURN = "game:next_turn"
GAME_ELIMINATE = "game:eliminate"
BOARD_TOGGLE = "board:toggle"
BOARD_BULK_DISCARD = "board:bulk_discard"
GUESS_SUBMIT = "guess:submit"
GUESS_GIVE_UP = "guess:give_up"
NOTES_UPDATE = "notes:update"

# Server -> room
ROOM_STATE = "room:state"
ROOM_PLAYER_JOINED = "room:player_joined"
ROOM_PLAYER_LEFT = "room:player_left"
GAME_STARTED = "game:started"
GAME_QUESTION_ASKED = "game:question_asked"
GAME_TURN_CHANGED = "game:turn_changed"
GAME_PAIR_ROTATED = "game:pair_rotated"
GAME_OPTIONS_ELIMINATED = "game:options_eliminated"
GAME_FINISHED = "game:finished"
GUESS_MADE = "guess:made"
GUESS_GAVE_UP = "guess:gave_up"

# Server -> one connection
ROOM_CREATED = "room:created"
ROOM_JOINED = "room:joined"
ROOM_KICKED = "room:kicked"
ROOM_ERROR = "room:error"
GAME_ERROR = "game:error"
GAME_SECRET = "game:secret"
BOARD_STATE = "board:state"
GUESS_CONFIRMED = "guess:confirmed"


@dataclass(frozen=True)
class PublicEvent:
    """An event every member of a room may see."""

    name: str
    payload: dict

    def __post_init__(self):
        if not isinstance(self.payload, dict):
            raise TypeError(f"public event payload must be a dict, got {type(self.payload).__name__}")


@dataclass(frozen=True)
class PrivateEvent:
    """An event for exactly one connection."""

    name: str
    payload: dict

    @classmethod
    def board(cls, board: PrivateBoard) -> "PrivateEvent":
        return cls(BOARD_STATE, board.payload)
