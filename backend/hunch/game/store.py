from __future__ import annotations

import logging
import random
import string
from dataclasses import dataclass
from threading import RLock
from typing import Any, Mapping

from . import scoring, turns
from .errors import CapacityError, NotFoundError, StateError, ValidationError
from .lobby import check_kick
from .models import GameRules, Player, Room
from .turns import TurnUpdate
from .validation import clean_text, normalize_code, parse_turn_mode, parse_variant

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


@dataclass(frozen=True)
class Departure:
    code: str
    player: Player
    room: Room | None
    promoted_admin_id: str | None = None
    turn: TurnUpdate | None = None
    finished: bool = False

    @property
    def room_deleted(self) -> bool:
        return self.room is None


class RoomStore:
    """In-memory registry of rooms plus the connection -> room index.

    ``lock`` is reentrant; message handlers hold it for the whole of an
    action so actions against the store are applied one at a time.
    """

    def __init__(self, rules: GameRules | None = None, rng: random.Random | None = None):
        self.lock = RLock()
        self.rules = rules or GameRules()
        self.rng = rng or random.Random()
        self._rooms: dict[str, Room] = {}
        self._sessions: dict[str, str] = {}

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "RoomStore":
        seed = config.get("SECRET_SEED", "")
        rng = random.Random(seed) if seed not in (None, "") else random.Random()
        return cls(rules=GameRules.from_config(config), rng=rng)

    def _new_code(self) -> str:
        while True:
            code = "".join(self.rng.choices(CODE_ALPHABET, k=self.rules.room_code_length))
            if code not in self._rooms:
                return code

    def get(self, code: Any) -> Room | None:
        with self.lock:
            if not isinstance(code, str):
                return None
            return self._rooms.get(code.strip().upper())

    def require(self, code: Any) -> Room:
        with self.lock:
            room = self._rooms.get(normalize_code(code))
            if room is None:
                raise NotFoundError("room not found", code="room_not_found")
            return room

    def list_rooms(self) -> list[Room]:
        with self.lock:
            return list(self._rooms.values())

    def room_of(self, player_id: str) -> str | None:
        with self.lock:
            return self._sessions.get(player_id)

    def _ensure_unseated(self, player_id: str) -> None:
        if player_id in self._sessions:
            raise StateError("you are already in a room", code="already_in_room")

    def create_room(
        self,
        player_id: str,
        room_name: Any,
        creator_name: Any,
        option_texts: Any,
        variant: Any = None,
        turn_mode: Any = None,
    ) -> Room:
        with self.lock:
            rules = self.rules
            name = clean_text(room_name, "room name", rules.max_name_length)
            username = clean_text(creator_name, "player name", rules.max_name_length)
            texts = self._clean_options(option_texts)
            room_variant = parse_variant(variant, rules.default_variant)
            room_turn_mode = parse_turn_mode(turn_mode, rules.default_turn_mode)
            self._ensure_unseated(player_id)

            room = Room(
                code=self._new_code(),
                name=name,
                rules=rules,
                variant=room_variant,
                turn_mode=room_turn_mode,
            )
            for text in texts:
                room.new_option(text)
            room.new_player(player_id, username, is_admin=True)

            self._rooms[room.code] = room
            self._sessions[player_id] = room.code
            logger.info("room %s created with %d options", room.code, len(room.options))
            return room

    def _clean_options(self, option_texts: Any) -> list[str]:
        rules = self.rules
        if not isinstance(option_texts, (list, tuple)):
            raise ValidationError("options must be a list", code="invalid_options")
        texts = [clean_text(t, "option text", rules.max_name_length) for t in option_texts]
        if not rules.min_options <= len(texts) <= rules.max_options:
            raise ValidationError(
                f"a room needs {rules.min_options}-{rules.max_options} options", code="invalid_options"
            )
        return texts

    def join_room(self, code: Any, player_id: str, name: Any) -> tuple[Room, Player]:
        with self.lock:
            room = self.require(code)
            username = clean_text(name, "player name", room.rules.max_name_length)
            if room.game_started:
                raise StateError("the game has already started", code="game_started")
            if len(room.players) >= room.rules.max_players:
                raise CapacityError(f"the room is full ({room.rules.max_players} players)")
            self._ensure_unseated(player_id)

            player = room.new_player(player_id, username)
            self._sessions[player_id] = room.code
            logger.info("room %s: player joined (%d/%d)", room.code, len(room.players), room.rules.max_players)
            return room, player

    def remove_player(self, code: Any, player_id: str) -> Departure:
        with self.lock:
            room = self.require(code)
            player = room.players.get(player_id)
            if player is None:
                raise NotFoundError("player not found", code="player_not_found")

            turn = None
            if room.in_game:
                # Leaving mid-game counts as giving up on everything.
                scoring.drop_departed(room, player_id)
                turn = turns.advance_after_finish(room, departed_id=player_id)

            del room.players[player_id]
            if self._sessions.get(player_id) == room.code:
                del self._sessions[player_id]

            if not room.players:
                del self._rooms[room.code]
                logger.info("room %s deleted (empty)", room.code)
                return Departure(code=room.code, player=player, room=None)

            promoted = None
            if player.is_admin:
                successor = next(iter(room.players.values()))
                successor.is_admin = True
                promoted = successor.id

            finished = scoring.check_completion(room)
            return Departure(
                code=room.code,
                player=player,
                room=room,
                promoted_admin_id=promoted,
                turn=None if finished else turn,
                finished=finished,
            )

    def kick_player(self, code: Any, actor_id: str, target_id: Any) -> Departure:
        with self.lock:
            room = self.require(code)
            target = check_kick(room, actor_id, target_id)
            logger.info("room %s: admin kicked a player", room.code)
            return self.remove_player(room.code, target.id)

    def disconnect(self, player_id: str) -> Departure | None:
        with self.lock:
            code = self._sessions.get(player_id)
            if code is None or code not in self._rooms:
                self._sessions.pop(player_id, None)
                return None
            return self.remove_player(code, player_id)
