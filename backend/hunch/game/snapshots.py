from __future__ import annotations

from .boards import remaining_options
from .models import Phase, Player, Room, TurnMode
from .pairing import get_active_pair
from .scoring import compute_results


def player_public_state(room: Room, player: Player) -> dict:
    # Never expose notes, guesses or which boards are closed.
    slots = player.slots.values()
    return {
        "id": player.id,
        "name": player.name,
        "isAdmin": player.is_admin,
        "isReady": player.is_ready,
        "hasFinished": room.game_started and player.has_finished,
        "finishedBoards": sum(1 for s in slots if s.is_terminal),
        "totalBoards": len(player.slots),
    }


def room_public_state(room: Room) -> dict:
    payload = {
        "code": room.code,
        "name": room.name,
        "variant": room.variant.value,
        "turnMode": room.turn_mode.value,
        "phase": room.phase.value,
        "gameStarted": room.game_started,
        "adminId": room.admin_id,
        "currentTurnPlayerId": room.current_turn_player_id,
        "lastQuestion": room.last_question,
        "maxPlayers": room.rules.max_players,
        "players": [player_public_state(room, p) for p in room.players.values()],
        "options": [
            {"id": o.id, "text": o.text, "eliminated": o.eliminated} for o in room.options.values()
        ],
        "remainingOptions": len(remaining_options(room)),
    }

    if room.turn_mode is TurnMode.PAIRED and room.in_game:
        payload["activePair"] = get_active_pair(room)
        payload["pairTurns"] = room.pair_turns
        payload["pairTurnBudget"] = room.rules.pair_turn_budget

    if room.phase is Phase.FINISHED:
        payload.update(compute_results(room))

    return payload


def secret_payload(room: Room, player_id: str) -> dict:
    option_id = room.secrets.get(player_id)
    option = room.options.get(option_id) if option_id else None
    return {
        "roomCode": room.code,
        "optionId": option_id,
        "optionText": option.text if option else None,
    }
