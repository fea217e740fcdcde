"""Guess submission, giving up, completion detection and final results.

Every player owns one or more guess slots, keyed by the player whose secret
the slot is about:

* own-secret variants (``shared``, ``personal``): one slot keyed by the
  player's own id; finishing it finishes the player.
* ``per_target``: one slot per other player; the player is finished once all
  of them are closed.

Results are derived on demand from slots, recorded guesses and secrets and
are never stored on the room.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from . import turns
from .boards import remaining_options
from .errors import ConfirmationRequiredError, InvalidTargetError, NotFoundError, StateError, ValidationError
from .models import GameVariant, Room, SlotStatus
from .turns import TurnUpdate
from .validation import require_in_game, require_member, require_player

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuessReceipt:
    guesser_id: str
    target_id: str
    option_id: str
    option_text: str
    player_finished: bool

    def to_payload(self) -> dict:
        return {
            "targetPlayerId": self.target_id,
            "optionId": self.option_id,
            "optionText": self.option_text,
            "hasFinished": self.player_finished,
        }


@dataclass(frozen=True)
class Settlement:
    turn: TurnUpdate | None
    finished: bool


def _resolve_slot(room: Room, player_id: str, target_id: Any) -> str:
    if room.variant is GameVariant.PER_TARGET:
        if target_id in (None, ""):
            raise ValidationError("targetPlayerId is required", code="target_required")
        if target_id == player_id:
            raise InvalidTargetError("you cannot guess your own secret in this game")
        require_member(room, target_id, "target player")
        return target_id

    if target_id not in (None, "", player_id):
        raise InvalidTargetError("in this game you guess your own secret")
    return player_id


def submit_guess(room: Room, guesser_id: str, option_id: Any, confirmation: Any, target_id: Any = None) -> GuessReceipt:
    guesser = require_player(room, guesser_id)
    require_in_game(room)
    if confirmation != room.rules.guess_confirmation:
        raise ConfirmationRequiredError("confirm your guess before submitting it")

    slot = _resolve_slot(room, guesser_id, target_id)
    status = guesser.slots.get(slot)
    if status is None:
        raise NotFoundError("board not found", code="board_not_found")
    if status.is_terminal:
        raise StateError("you already finished this board", code="already_finished")

    option = room.options.get(option_id) if isinstance(option_id, str) else None
    if option is None:
        raise NotFoundError("option not found", code="option_not_found")
    if option.eliminated:
        raise StateError("that option has been eliminated", code="option_eliminated")

    guesser.guesses[slot] = option.id
    guesser.slots[slot] = SlotStatus.GUESSED
    logger.info("room %s: %s locked in a guess", room.code, guesser_id)

    return GuessReceipt(
        guesser_id=guesser_id,
        target_id=slot,
        option_id=option.id,
        option_text=option.text,
        player_finished=guesser.has_finished,
    )


def give_up(room: Room, player_id: str, target_id: Any = None) -> list[str]:
    """Close one board (per_target with a target) or every open slot."""
    player = require_player(room, player_id)
    require_in_game(room)

    if room.variant is GameVariant.PER_TARGET and target_id not in (None, ""):
        slots = [_resolve_slot(room, player_id, target_id)]
    else:
        if target_id not in (None, "") and target_id != player_id:
            raise InvalidTargetError("in this game you give up on your own secret")
        slots = list(player.slots.keys())

    closed = [s for s in slots if s in player.slots and not player.slots[s].is_terminal]
    if not closed:
        raise StateError("nothing left to give up on", code="already_finished")

    for s in closed:
        player.slots[s] = SlotStatus.GAVE_UP
    logger.info("room %s: %s gave up on %d board(s)", room.code, player_id, len(closed))
    return closed


def drop_departed(room: Room, player_id: str) -> None:
    """Forget every slot and board that involves a player leaving mid-game."""
    room.boards = {
        key: board for key, board in room.boards.items() if player_id not in key
    }
    for pid, player in room.players.items():
        if pid == player_id:
            player.slots = {}
            player.guesses = {}
            continue
        player.slots.pop(player_id, None)
        player.guesses.pop(player_id, None)
    room.secrets.pop(player_id, None)


def check_completion(room: Room) -> bool:
    if not room.in_game:
        return False

    done = all(p.has_finished for p in room.players.values())
    if room.variant is GameVariant.SHARED and len(remaining_options(room)) <= 1:
        done = True
    if not done:
        return False

    turns.finish_game(room)
    return True


def settle(room: Room, departed_id: str | None = None) -> Settlement:
    """Hand the turn on and detect the end of the game after a slot closed."""
    turn = turns.advance_after_finish(room, departed_id=departed_id)
    finished = check_completion(room)
    return Settlement(turn=None if finished else turn, finished=finished)


def compute_results(room: Room) -> dict:
    def _text(option_id: str | None) -> str | None:
        option = room.options.get(option_id) if option_id else None
        return option.text if option else None

    pairs = []
    for guesser in room.players.values():
        for target_id, status in guesser.slots.items():
            secret_id = room.secrets.get(target_id)
            guess_id = guesser.guesses.get(target_id)
            target = room.players.get(target_id)
            pairs.append(
                {
                    "guesserId": guesser.id,
                    "guesserName": guesser.name,
                    "targetId": target_id,
                    "targetName": target.name if target else None,
                    "isCorrect": guess_id is not None and guess_id == secret_id,
                    "gaveUp": status is SlotStatus.GAVE_UP,
                    "actualSecretText": _text(secret_id),
                    "guessedOptionText": _text(guess_id),
                }
            )

    stats = {
        "totalPlayers": len(room.players),
        "totalCorrect": sum(1 for p in pairs if p["isCorrect"]),
        "totalGaveUp": sum(1 for p in pairs if p["gaveUp"]),
        "totalBoards": len(pairs),
        "totalGuesses": sum(1 for p in pairs if p["guessedOptionText"] is not None),
    }
    return {"results": pairs, "stats": stats}
