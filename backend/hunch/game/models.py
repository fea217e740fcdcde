from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


class Phase(str, Enum):
    LOBBY = "lobby"
    QUESTION = "question"
    ELIMINATION = "elimination"
    FINISHED = "finished"


class GameVariant(str, Enum):
    # One global elimination list, everybody guesses their own secret.
    SHARED = "shared"
    # One private board per player, everybody guesses their own secret.
    PERSONAL = "personal"
    # One private board per (owner, target) pair, players guess each other.
    PER_TARGET = "per_target"


class TurnMode(str, Enum):
    ROUND_ROBIN = "round_robin"
    PAIRED = "paired"


class OptionState(str, Enum):
    NORMAL = "normal"
    DISCARDED = "discarded"
    POSSIBLE_GUESS = "possible_guess"


class SlotStatus(str, Enum):
    PLAYING = "playing"
    GUESSED = "guessed"
    GAVE_UP = "gave_up"

    @property
    def is_terminal(self) -> bool:
        return self is not SlotStatus.PLAYING


@dataclass(frozen=True)
class GameRules:
    max_players: int = 4
    min_players: int = 2
    min_options: int = 2
    max_options: int = 50
    max_name_length: int = 30
    max_notes_length: int = 2000
    room_code_length: int = 6
    pair_turn_budget: int = 6
    guess_confirmation: str = "CONFIRMED"
    require_all_ready: bool = False
    default_variant: GameVariant = GameVariant.PER_TARGET
    default_turn_mode: TurnMode = TurnMode.ROUND_ROBIN

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "GameRules":
        defaults = cls()
        return cls(
            max_players=int(config.get("MAX_PLAYERS", defaults.max_players)),
            min_players=int(config.get("MIN_PLAYERS", defaults.min_players)),
            min_options=int(config.get("MIN_OPTIONS", defaults.min_options)),
            max_options=int(config.get("MAX_OPTIONS", defaults.max_options)),
            max_name_length=int(config.get("MAX_NAME_LENGTH", defaults.max_name_length)),
            max_notes_length=int(config.get("MAX_NOTES_LENGTH", defaults.max_notes_length)),
            room_code_length=int(config.get("ROOM_CODE_LENGTH", defaults.room_code_length)),
            pair_turn_budget=int(config.get("PAIR_TURN_BUDGET", defaults.pair_turn_budget)),
            guess_confirmation=str(config.get("GUESS_CONFIRMATION", defaults.guess_confirmation)),
            require_all_ready=bool(config.get("REQUIRE_ALL_READY", defaults.require_all_ready)),
            default_variant=GameVariant(config.get("DEFAULT_VARIANT", defaults.default_variant.value)),
            default_turn_mode=TurnMode(config.get("DEFAULT_TURN_MODE", defaults.default_turn_mode.value)),
        )


@dataclass
class Option:
    id: str
    text: str
    eliminated: bool = False


@dataclass
class BoardEntry:
    state: OptionState = OptionState.NORMAL
    discarded_for_player_id: str | None = None


@dataclass
class Board:
    owner_id: str
    target_id: str
    entries: dict[str, BoardEntry] = field(default_factory=dict)


@dataclass
class Player:
    id: str
    name: str
    joined_seq: int = 0
    is_admin: bool = False
    is_ready: bool = False
    notes: str = ""
    # target player id -> status; own-secret variants key the single slot by the player's own id
    slots: dict[str, SlotStatus] = field(default_factory=dict)
    # target player id -> guessed option id
    guesses: dict[str, str] = field(default_factory=dict)

    @property
    def has_finished(self) -> bool:
        return all(status.is_terminal for status in self.slots.values())


@dataclass
class Room:
    code: str
    name: str
    rules: GameRules = field(default_factory=GameRules)
    variant: GameVariant = GameVariant.PER_TARGET
    turn_mode: TurnMode = TurnMode.ROUND_ROBIN
    phase: Phase = Phase.LOBBY
    game_started: bool = False
    current_turn_player_id: str | None = None
    rotation_index: int = 0
    pair_turns: int = 0
    last_question: str | None = None
    secrets: dict[str, str] = field(default_factory=dict)
    options: dict[str, Option] = field(default_factory=dict)
    players: dict[str, Player] = field(default_factory=dict)
    boards: dict[tuple[str, str], Board] = field(default_factory=dict)
    next_option_seq: int = 0
    next_join_seq: int = 0

    @property
    def in_game(self) -> bool:
        return self.phase in (Phase.QUESTION, Phase.ELIMINATION)

    @property
    def admin_id(self) -> str | None:
        for p in self.players.values():
            if p.is_admin:
                return p.id
        return None

    def new_option(self, text: str) -> Option:
        option = Option(id=f"opt-{self.next_option_seq}", text=text)
        self.next_option_seq += 1
        self.options[option.id] = option
        return option

    def new_player(self, player_id: str, name: str, is_admin: bool = False) -> Player:
        player = Player(id=player_id, name=name, joined_seq=self.next_join_seq, is_admin=is_admin)
        self.next_join_seq += 1
        self.players[player.id] = player
        return player
