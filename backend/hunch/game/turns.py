from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any

from .boards import init_boards
from .errors import StateError, ValidationError
from .models import GameVariant, Phase, Room, SlotStatus, TurnMode
from .pairing import get_active_pair, next_unfinished
from .validation import require_admin, require_in_game, require_player

logger = logging.getLogger(__name__)

QUESTION_MAX_LENGTH = 200

TRANSITIONS: dict[Phase, frozenset[Phase]] = {
    Phase.LOBBY: frozenset({Phase.QUESTION}),
    Phase.QUESTION: frozenset({Phase.ELIMINATION, Phase.FINISHED}),
    Phase.ELIMINATION: frozenset({Phase.QUESTION, Phase.FINISHED}),
    Phase.FINISHED: frozenset(),
}


@dataclass(frozen=True)
class TurnUpdate:
    current_turn_player_id: str | None
    phase: Phase
    pair: tuple[str, ...] = ()
    pair_rotated: bool = False

    def to_payload(self) -> dict:
        return {
            "currentTurnPlayerId": self.current_turn_player_id,
            "phase": self.phase.value,
            "activePair": list(self.pair),
        }


def transition(room: Room, phase: Phase) -> None:
    if phase not in TRANSITIONS[room.phase]:
        raise StateError(
            f"cannot move from {room.phase.value} to {phase.value}", code="invalid_transition"
        )
    room.phase = phase


def _update(room: Room, pair_rotated: bool = False) -> TurnUpdate:
    pair = tuple(get_active_pair(room)) if room.turn_mode is TurnMode.PAIRED and room.in_game else ()
    return TurnUpdate(
        current_turn_player_id=room.current_turn_player_id,
        phase=room.phase,
        pair=pair,
        pair_rotated=pair_rotated,
    )


def assign_secrets(room: Room, rng: random.Random) -> dict[str, str]:
    """Uniform draw without replacement, one option per player in join order."""
    available = list(room.options.keys())
    assignments: dict[str, str] = {}
    for pid in room.players:
        if not available:
            break
        idx = rng.randrange(len(available))
        assignments[pid] = available.pop(idx)
    return assignments


def start_game(room: Room, actor_id: str, rng: random.Random) -> TurnUpdate:
    require_admin(room, actor_id)
    if room.phase is not Phase.LOBBY:
        raise StateError("the game has already started", code="game_started")

    rules = room.rules
    if len(room.players) < rules.min_players:
        raise ValidationError(f"need at least {rules.min_players} players", code="not_enough_players")
    if len(room.options) < rules.min_options:
        raise ValidationError(f"need at least {rules.min_options} options", code="not_enough_options")
    if len(room.options) < len(room.players):
        raise ValidationError("there must be at least as many options as players", code="not_enough_options")
    if rules.require_all_ready:
        waiting = [p.name for p in room.players.values() if not p.is_admin and not p.is_ready]
        if waiting:
            raise StateError(f"waiting for players to get ready: {', '.join(waiting)}", code="players_not_ready")

    room.secrets = assign_secrets(room, rng)

    own_secret = room.variant is not GameVariant.PER_TARGET
    for pid, player in room.players.items():
        player.guesses = {}
        if own_secret:
            player.slots = {pid: SlotStatus.PLAYING}
        else:
            player.slots = {other: SlotStatus.PLAYING for other in room.players if other != pid}

    for option in room.options.values():
        option.eliminated = False
    init_boards(room)

    transition(room, Phase.QUESTION)
    room.game_started = True
    room.rotation_index = 0
    room.pair_turns = 0
    room.last_question = None
    room.current_turn_player_id = next(iter(room.players))

    logger.info(
        "room %s: game started (%s, %s) with %d players and %d options",
        room.code,
        room.variant.value,
        room.turn_mode.value,
        len(room.players),
        len(room.options),
    )
    return _update(room)


def ask_question(room: Room, actor_id: str, question: Any = None) -> TurnUpdate:
    require_player(room, actor_id)
    require_in_game(room)
    if room.phase is not Phase.QUESTION:
        raise StateError("a question was already asked this turn", code="wrong_phase")
    if room.current_turn_player_id != actor_id:
        raise StateError("it is not your turn", code="not_your_turn")

    text = None
    if isinstance(question, str) and question.strip():
        text = question.strip()
        if len(text) > QUESTION_MAX_LENGTH:
            raise ValidationError(f"questions are limited to {QUESTION_MAX_LENGTH} characters")
    room.last_question = text

    if room.turn_mode is TurnMode.ROUND_ROBIN:
        transition(room, Phase.ELIMINATION)
        return _update(room)

    # Paired: the question phase cycles in place.
    room.pair_turns += 1
    if room.pair_turns >= room.rules.pair_turn_budget:
        room.rotation_index += 1
        room.pair_turns = 0
        pair = get_active_pair(room)
        room.current_turn_player_id = pair[0] if pair else None
        logger.info("room %s: pair rotated to %s", room.code, pair)
        return _update(room, pair_rotated=True)

    pair = get_active_pair(room)
    if len(pair) == 2 and actor_id in pair:
        room.current_turn_player_id = pair[1] if pair[0] == actor_id else pair[0]
    elif pair:
        room.current_turn_player_id = pair[0]
    return _update(room)


def next_turn(room: Room, actor_id: str) -> TurnUpdate:
    require_player(room, actor_id)
    require_in_game(room)
    if room.turn_mode is not TurnMode.ROUND_ROBIN:
        raise StateError("turns advance automatically in paired mode", code="wrong_mode")
    if room.phase is not Phase.ELIMINATION:
        raise StateError("ask a question before ending your turn", code="wrong_phase")
    if room.current_turn_player_id != actor_id:
        raise StateError("it is not your turn", code="not_your_turn")

    room.current_turn_player_id = next_unfinished(room, after=actor_id)
    transition(room, Phase.QUESTION)
    return _update(room)


def advance_after_finish(room: Room, departed_id: str | None = None) -> TurnUpdate | None:
    """Move the turn off a player who finished or left.

    Returns None when the current turn holder can keep the turn.
    """
    if not room.in_game:
        return None

    current = room.current_turn_player_id
    exclude = {departed_id} if departed_id else set()

    if room.turn_mode is TurnMode.PAIRED:
        pair = get_active_pair(room, exclude)
        if current in pair:
            return None
        room.current_turn_player_id = pair[0] if pair else None
        room.pair_turns = 0
        return _update(room)

    holder = room.players.get(current) if current else None
    if holder is not None and current not in exclude and not holder.has_finished:
        return None
    room.current_turn_player_id = next_unfinished(room, after=current, exclude=exclude)
    if room.phase is Phase.ELIMINATION:
        transition(room, Phase.QUESTION)
    return _update(room)


def finish_game(room: Room) -> None:
    transition(room, Phase.FINISHED)
    room.current_turn_player_id = None
    logger.info("room %s: game finished", room.code)
