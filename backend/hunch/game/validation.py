from __future__ import annotations

from typing import Any

from .errors import AuthorizationError, NotFoundError, StateError, ValidationError
from .models import GameVariant, Player, Room, TurnMode


def clean_text(raw: Any, what: str, max_length: int) -> str:
    if not isinstance(raw, str):
        raise ValidationError(f"{what} must be text")
    text = raw.strip()
    if not text or len(text) > max_length:
        raise ValidationError(f"{what} must be 1-{max_length} characters")
    # No control characters.
    for ch in text:
        if ord(ch) < 32:
            raise ValidationError(f"{what} contains invalid characters")
    return text


def normalize_code(raw: Any) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("room code is required", code="invalid_room")
    return raw.strip().upper()


def parse_variant(raw: Any, default: GameVariant) -> GameVariant:
    if raw is None or raw == "":
        return default
    try:
        return GameVariant(raw)
    except ValueError:
        raise ValidationError(f"unknown game variant: {raw!r}") from None


def parse_turn_mode(raw: Any, default: TurnMode) -> TurnMode:
    if raw is None or raw == "":
        return default
    try:
        return TurnMode(raw)
    except ValueError:
        raise ValidationError(f"unknown turn mode: {raw!r}") from None


def require_player(room: Room, player_id: str) -> Player:
    player = room.players.get(player_id)
    if player is None:
        raise AuthorizationError("you are not a player in this room", code="not_in_room")
    return player


def require_admin(room: Room, player_id: str) -> Player:
    player = require_player(room, player_id)
    if not player.is_admin:
        raise AuthorizationError("only the room admin can do that", code="only_admin")
    return player


def require_lobby(room: Room) -> None:
    if room.game_started:
        raise StateError("the game has already started", code="game_started")


def require_in_game(room: Room) -> None:
    if not room.in_game:
        raise StateError("the game is not in progress", code="not_in_game")


def require_member(room: Room, player_id: Any, what: str = "player") -> Player:
    if not isinstance(player_id, str) or player_id not in room.players:
        raise NotFoundError(f"{what} not found", code="player_not_found")
    return room.players[player_id]
