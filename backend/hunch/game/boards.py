from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from .errors import InvalidTargetError, NotFoundError, StateError, ValidationError
from .models import Board, BoardEntry, GameVariant, OptionState, Option, Phase, Room, SlotStatus, TurnMode
from .pairing import get_active_pair
from .validation import clean_text, require_admin, require_in_game, require_lobby, require_member, require_player

logger = logging.getLogger(__name__)


_CYCLES: dict[GameVariant, tuple[OptionState, ...]] = {
    GameVariant.PERSONAL: (OptionState.NORMAL, OptionState.DISCARDED, OptionState.POSSIBLE_GUESS),
    GameVariant.PER_TARGET: (OptionState.NORMAL, OptionState.DISCARDED),
}


@dataclass(frozen=True)
class PrivateBoard:
    """Serialized view of one board; may only ever be delivered to its owner."""

    owner_id: str
    target_id: str
    payload: dict


def init_boards(room: Room) -> None:
    room.boards = {}
    option_ids = list(room.options.keys())

    def _fresh(owner_id: str, target_id: str) -> Board:
        return Board(
            owner_id=owner_id,
            target_id=target_id,
            entries={oid: BoardEntry() for oid in option_ids},
        )

    if room.variant is GameVariant.PERSONAL:
        for pid in room.players:
            room.boards[(pid, pid)] = _fresh(pid, pid)
    elif room.variant is GameVariant.PER_TARGET:
        for owner_id in room.players:
            for target_id in room.players:
                if owner_id != target_id:
                    room.boards[(owner_id, target_id)] = _fresh(owner_id, target_id)


def board_view(room: Room, board: Board) -> PrivateBoard:
    owner = room.players.get(board.owner_id)
    status = owner.slots.get(board.target_id, SlotStatus.GAVE_UP) if owner else SlotStatus.GAVE_UP
    options = []
    for oid, option in room.options.items():
        entry = board.entries.get(oid) or BoardEntry()
        options.append(
            {
                "id": oid,
                "text": option.text,
                "eliminated": option.eliminated,
                "state": entry.state.value,
                "discardedForPlayerId": entry.discarded_for_player_id,
            }
        )
    payload = {
        "roomCode": room.code,
        "ownerId": board.owner_id,
        "targetPlayerId": board.target_id,
        "status": status.value,
        "options": options,
    }
    return PrivateBoard(owner_id=board.owner_id, target_id=board.target_id, payload=payload)


def boards_of(room: Room, owner_id: str) -> list[PrivateBoard]:
    return [board_view(room, b) for (owner, _), b in room.boards.items() if owner == owner_id]


def _resolve_board(room: Room, owner_id: str, target_id: Any) -> tuple[Board, str | None]:
    """Return the caller's board and the player a discard is attributed to."""
    if room.variant is GameVariant.SHARED:
        raise StateError("this game uses a shared option list", code="no_boards")

    if room.variant is GameVariant.PERSONAL:
        attributed = None
        if target_id not in (None, ""):
            require_member(room, target_id, "target player")
            if target_id == owner_id:
                raise InvalidTargetError("you cannot discard an option for yourself")
            attributed = target_id
        key = (owner_id, owner_id)
    else:
        if target_id in (None, ""):
            raise ValidationError("targetPlayerId is required", code="target_required")
        if target_id == owner_id:
            raise InvalidTargetError("you do not have a board for yourself")
        require_member(room, target_id, "target player")
        attributed = target_id
        key = (owner_id, target_id)

    board = room.boards.get(key)
    if board is None:
        raise NotFoundError("board not found", code="board_not_found")
    return board, attributed


def _board_closed(room: Room, board: Board) -> bool:
    owner = room.players[board.owner_id]
    return owner.slots.get(board.target_id, SlotStatus.GAVE_UP).is_terminal


def toggle_option_state(room: Room, owner_id: str, option_id: Any, target_id: Any = None) -> PrivateBoard:
    require_player(room, owner_id)
    require_in_game(room)
    board, attributed = _resolve_board(room, owner_id, target_id)

    option = room.options.get(option_id) if isinstance(option_id, str) else None
    if option is None:
        raise NotFoundError("option not found", code="option_not_found")

    # Eliminated options and finished boards are frozen; the request is ignored.
    if option.eliminated or _board_closed(room, board):
        return board_view(room, board)

    entry = board.entries.setdefault(option.id, BoardEntry())
    cycle = _CYCLES[room.variant]
    idx = cycle.index(entry.state) if entry.state in cycle else -1
    entry.state = cycle[(idx + 1) % len(cycle)]
    entry.discarded_for_player_id = attributed if entry.state is OptionState.DISCARDED else None
    return board_view(room, board)


def bulk_discard(room: Room, owner_id: str, option_ids: Iterable[Any], target_id: Any = None) -> PrivateBoard:
    require_player(room, owner_id)
    require_in_game(room)
    board, attributed = _resolve_board(room, owner_id, target_id)

    if _board_closed(room, board):
        return board_view(room, board)

    for oid in option_ids:
        option = room.options.get(oid) if isinstance(oid, str) else None
        if option is None or option.eliminated:
            continue
        entry = board.entries.setdefault(option.id, BoardEntry())
        entry.state = OptionState.DISCARDED
        entry.discarded_for_player_id = attributed
    return board_view(room, board)


def remaining_options(room: Room) -> list[Option]:
    return [o for o in room.options.values() if not o.eliminated]


def eliminate_options(room: Room, player_id: str, option_ids: Iterable[Any]) -> list[str]:
    """Globally eliminate options in the shared-list variant.

    Round robin: only the current-turn player, during the elimination phase.
    Paired: either member of the active pair, during the question phase.
    Returns the ids that were newly eliminated.
    """
    require_player(room, player_id)
    require_in_game(room)
    if room.variant is not GameVariant.SHARED:
        raise StateError("options can only be eliminated in the shared variant", code="no_shared_list")

    if room.turn_mode is TurnMode.PAIRED:
        if player_id not in get_active_pair(room):
            raise StateError("it is not your turn", code="not_your_turn")
    else:
        if room.phase is not Phase.ELIMINATION:
            raise StateError("ask a question before eliminating options", code="wrong_phase")
        if room.current_turn_player_id != player_id:
            raise StateError("it is not your turn", code="not_your_turn")

    eliminated: list[str] = []
    for oid in option_ids:
        option = room.options.get(oid) if isinstance(oid, str) else None
        if option is None or option.eliminated:
            continue
        option.eliminated = True
        eliminated.append(option.id)

    logger.info("room %s: %s eliminated %d option(s)", room.code, player_id, len(eliminated))
    return eliminated


def add_option(room: Room, actor_id: str, text: Any) -> Option:
    require_admin(room, actor_id)
    require_lobby(room)
    clean = clean_text(text, "option text", room.rules.max_name_length)
    if len(room.options) >= room.rules.max_options:
        raise ValidationError(f"a room can have at most {room.rules.max_options} options", code="too_many_options")
    return room.new_option(clean)


def remove_option(room: Room, actor_id: str, option_id: Any) -> Option:
    require_admin(room, actor_id)
    require_lobby(room)
    option = room.options.get(option_id) if isinstance(option_id, str) else None
    if option is None:
        raise NotFoundError("option not found", code="option_not_found")
    if len(room.options) <= room.rules.min_options:
        raise ValidationError(
            f"a room needs at least {room.rules.min_options} options", code="too_few_options"
        )
    return room.options.pop(option.id)
