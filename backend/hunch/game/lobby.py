from __future__ import annotations

from typing import Any

from .errors import InvalidTargetError, StateError, ValidationError
from .models import Player, Room
from .validation import (
    clean_text,
    parse_turn_mode,
    parse_variant,
    require_admin,
    require_lobby,
    require_member,
    require_player,
)


def toggle_ready(room: Room, player_id: str) -> Player:
    player = require_player(room, player_id)
    if room.game_started:
        raise StateError("ready state only applies in the lobby", code="game_started")
    player.is_ready = not player.is_ready
    return player


def rename_room(room: Room, actor_id: str, name: Any) -> str:
    require_admin(room, actor_id)
    room.name = clean_text(name, "room name", room.rules.max_name_length)
    return room.name


def configure_room(room: Room, actor_id: str, variant: Any = None, turn_mode: Any = None) -> None:
    require_admin(room, actor_id)
    require_lobby(room)
    room.variant = parse_variant(variant, room.variant)
    room.turn_mode = parse_turn_mode(turn_mode, room.turn_mode)


def update_notes(room: Room, player_id: str, notes: Any) -> None:
    player = require_player(room, player_id)
    if not isinstance(notes, str):
        raise ValidationError("notes must be text")
    if len(notes) > room.rules.max_notes_length:
        raise ValidationError(f"notes are limited to {room.rules.max_notes_length} characters")
    player.notes = notes


def check_kick(room: Room, actor_id: str, target_id: Any) -> Player:
    require_admin(room, actor_id)
    target = require_member(room, target_id)
    if target.id == actor_id:
        raise InvalidTargetError("you cannot kick yourself")
    return target
