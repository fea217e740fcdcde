from __future__ import annotations

import functools
import logging
from typing import Any, Callable

from flask import request
from flask_socketio import SocketIO, join_room, leave_room

from ..game import boards, lobby, scoring, turns
from ..game.errors import GameError, ValidationError
from ..game.models import Room
from ..game.snapshots import player_public_state, secret_payload
from ..game.store import Departure, RoomStore
from ..game.validation import require_player
from . import events as ev
from .broadcast import Broadcaster
from .events import PrivateEvent, PublicEvent

logger = logging.getLogger(__name__)


def _id_list(payload: dict, key: str) -> list[str]:
    raw = payload.get(key)
    if not isinstance(raw, list):
        raise ValidationError(f"{key} must be a list")
    return [str(item) for item in raw]


def register_socketio_handlers(socketio: SocketIO, store: RoomStore) -> Broadcaster:
    broadcaster = Broadcaster(socketio)

    def _action(event: str, error_event: str) -> Callable:
        """Register a handler that runs atomically under the store lock.

        Rejected actions are reported privately to the caller and in the ack;
        nothing is sent to the rest of the room.
        """

        def decorator(fn: Callable[[dict], dict | None]) -> Callable:
            @functools.wraps(fn)
            def wrapper(data: Any = None):
                sid = request.sid
                try:
                    if data is not None and not isinstance(data, dict):
                        raise ValidationError("payload must be an object")
                    with store.lock:
                        result = fn(data or {})
                except GameError as exc:
                    logger.info("rejected %s from %s: %s", event, sid, exc.code)
                    broadcaster.to_player(sid, PrivateEvent(error_event, exc.to_payload()))
                    return {"ok": False, **exc.to_payload()}
                return {"ok": True, **(result or {})}

            socketio.on(event)(wrapper)
            return wrapper

        return decorator

    def _seated_room(payload: dict) -> Room:
        room = store.require(payload.get("roomCode"))
        require_player(room, request.sid)
        return room

    def _announce_finish(room: Room) -> None:
        broadcaster.to_room(room.code, PublicEvent(ev.GAME_FINISHED, scoring.compute_results(room)))

    def _announce_turn(room: Room, turn: turns.TurnUpdate | None) -> None:
        if turn is None:
            return
        broadcaster.to_room(room.code, PublicEvent(ev.GAME_TURN_CHANGED, turn.to_payload()))

    def _after_slot_closed(room: Room) -> None:
        settlement = scoring.settle(room)
        _announce_turn(room, settlement.turn)
        if settlement.finished:
            _announce_finish(room)
        broadcaster.room_state(room)

    def _announce_departure(departure: Departure) -> None:
        leave_room(departure.code, sid=departure.player.id)
        room = departure.room
        if room is None:
            return
        broadcaster.to_room(
            room.code,
            PublicEvent(
                ev.ROOM_PLAYER_LEFT,
                {"playerId": departure.player.id, "promotedAdminId": departure.promoted_admin_id},
            ),
        )
        _announce_turn(room, departure.turn)
        if departure.finished:
            _announce_finish(room)
        broadcaster.room_state(room)

    @_action(ev.ROOM_CREATE, ev.ROOM_ERROR)
    def room_create(payload: dict):
        room = store.create_room(
            request.sid,
            payload.get("roomName"),
            payload.get("username"),
            payload.get("options"),
            variant=payload.get("variant"),
            turn_mode=payload.get("turnMode"),
        )
        join_room(room.code)
        info = {"roomCode": room.code, "roomName": room.name, "playerId": request.sid, "isAdmin": True}
        broadcaster.to_player(request.sid, PrivateEvent(ev.ROOM_CREATED, info))
        broadcaster.room_state(room)
        return info

    @_action(ev.ROOM_JOIN, ev.ROOM_ERROR)
    def room_join(payload: dict):
        room, player = store.join_room(payload.get("roomCode"), request.sid, payload.get("username"))
        join_room(room.code)
        info = {"roomCode": room.code, "roomName": room.name, "playerId": player.id, "isAdmin": player.is_admin}
        broadcaster.to_player(request.sid, PrivateEvent(ev.ROOM_JOINED, info))
        broadcaster.to_room(
            room.code, PublicEvent(ev.ROOM_PLAYER_JOINED, {"player": player_public_state(room, player)})
        )
        broadcaster.room_state(room)
        return info

    @_action(ev.ROOM_LEAVE, ev.ROOM_ERROR)
    def room_leave(payload: dict):
        room = _seated_room(payload)
        _announce_departure(store.remove_player(room.code, request.sid))

    @_action(ev.ROOM_READY, ev.ROOM_ERROR)
    def room_ready(payload: dict):
        room = store.require(payload.get("roomCode"))
        player = lobby.toggle_ready(room, request.sid)
        broadcaster.room_state(room)
        return {"isReady": player.is_ready}

    @_action(ev.ROOM_RENAME, ev.ROOM_ERROR)
    def room_rename(payload: dict):
        room = store.require(payload.get("roomCode"))
        lobby.rename_room(room, request.sid, payload.get("roomName"))
        broadcaster.room_state(room)
        return {"roomName": room.name}

    @_action(ev.ROOM_CONFIGURE, ev.ROOM_ERROR)
    def room_configure(payload: dict):
        room = store.require(payload.get("roomCode"))
        lobby.configure_room(room, request.sid, variant=payload.get("variant"), turn_mode=payload.get("turnMode"))
        broadcaster.room_state(room)
        return {"variant": room.variant.value, "turnMode": room.turn_mode.value}

    @_action(ev.ROOM_OPTION_ADD, ev.ROOM_ERROR)
    def room_option_add(payload: dict):
        room = store.require(payload.get("roomCode"))
        option = boards.add_option(room, request.sid, payload.get("optionText"))
        broadcaster.room_state(room)
        return {"optionId": option.id}

    @_action(ev.ROOM_OPTION_REMOVE, ev.ROOM_ERROR)
    def room_option_remove(payload: dict):
        room = store.require(payload.get("roomCode"))
        option = boards.remove_option(room, request.sid, payload.get("optionId"))
        broadcaster.room_state(room)
        return {"optionId": option.id}

    @_action(ev.ROOM_KICK, ev.ROOM_ERROR)
    def room_kick(payload: dict):
        room = store.require(payload.get("roomCode"))
        departure = store.kick_player(room.code, request.sid, payload.get("playerId"))
        broadcaster.to_player(
            departure.player.id,
            PrivateEvent(ev.ROOM_KICKED, {"roomCode": room.code, "message": "You were removed from the room"}),
        )
        _announce_departure(departure)

    @_action(ev.GAME_START, ev.GAME_ERROR)
    def game_start(payload: dict):
        room = store.require(payload.get("roomCode"))
        turn = turns.start_game(room, request.sid, store.rng)

        for pid in room.players:
            broadcaster.to_player(pid, PrivateEvent(ev.GAME_SECRET, secret_payload(room, pid)))
            for view in boards.boards_of(room, pid):
                broadcaster.to_player(pid, PrivateEvent.board(view))

        started = {"variant": room.variant.value, "turnMode": room.turn_mode.value, **turn.to_payload()}
        broadcaster.to_room(room.code, PublicEvent(ev.GAME_STARTED, started))
        broadcaster.room_state(room)

    @_action(ev.GAME_ASK, ev.GAME_ERROR)
    def game_ask(payload: dict):
        room = _seated_room(payload)
        asker = room.players[request.sid]
        turn = turns.ask_question(room, request.sid, payload.get("question"))

        broadcaster.to_room(
            room.code,
            PublicEvent(
                ev.GAME_QUESTION_ASKED,
                {"playerId": asker.id, "playerName": asker.name, "question": room.last_question},
            ),
        )
        if turn.pair_rotated:
            broadcaster.to_room(
                room.code,
                PublicEvent(ev.GAME_PAIR_ROTATED, {"activePair": list(turn.pair), "rotationIndex": room.rotation_index}),
            )
        _announce_turn(room, turn)
        broadcaster.room_state(room)

    @_action(ev.GAME_NEXT_TURN, ev.GAME_ERROR)
    def game_next_turn(payload: dict):
        room = _seated_room(payload)
        turn = turns.next_turn(room, request.sid)
        _announce_turn(room, turn)
        if scoring.check_completion(room):
            _announce_finish(room)
        broadcaster.room_state(room)

    @_action(ev.GAME_ELIMINATE, ev.GAME_ERROR)
    def game_eliminate(payload: dict):
        room = _seated_room(payload)
        eliminated = boards.eliminate_options(room, request.sid, _id_list(payload, "optionIds"))
        broadcaster.to_room(
            room.code,
            PublicEvent(
                ev.GAME_OPTIONS_ELIMINATED,
                {"optionIds": eliminated, "remaining": len(boards.remaining_options(room))},
            ),
        )
        if scoring.check_completion(room):
            _announce_finish(room)
        broadcaster.room_state(room)
        return {"eliminated": eliminated}

    @_action(ev.BOARD_TOGGLE, ev.GAME_ERROR)
    def board_toggle(payload: dict):
        room = _seated_room(payload)
        view = boards.toggle_option_state(
            room, request.sid, payload.get("optionId"), payload.get("targetPlayerId")
        )
        broadcaster.to_player(request.sid, PrivateEvent.board(view))

    @_action(ev.BOARD_BULK_DISCARD, ev.GAME_ERROR)
    def board_bulk_discard(payload: dict):
        room = _seated_room(payload)
        view = boards.bulk_discard(
            room, request.sid, _id_list(payload, "optionIds"), payload.get("targetPlayerId")
        )
        broadcaster.to_player(request.sid, PrivateEvent.board(view))

    @_action(ev.GUESS_SUBMIT, ev.GAME_ERROR)
    def guess_submit(payload: dict):
        room = _seated_room(payload)
        receipt = scoring.submit_guess(
            room,
            request.sid,
            payload.get("optionId"),
            payload.get("confirmation"),
            target_id=payload.get("targetPlayerId"),
        )
        broadcaster.to_player(request.sid, PrivateEvent(ev.GUESS_CONFIRMED, receipt.to_payload()))
        for view in boards.boards_of(room, request.sid):
            if view.target_id == receipt.target_id:
                broadcaster.to_player(request.sid, PrivateEvent.board(view))
        broadcaster.to_room(
            room.code,
            PublicEvent(ev.GUESS_MADE, {"playerId": request.sid, "hasFinished": receipt.player_finished}),
        )
        _after_slot_closed(room)
        return receipt.to_payload()

    @_action(ev.GUESS_GIVE_UP, ev.GAME_ERROR)
    def guess_give_up(payload: dict):
        room = _seated_room(payload)
        closed = scoring.give_up(room, request.sid, payload.get("targetPlayerId"))
        player = room.players[request.sid]
        broadcaster.to_room(
            room.code,
            PublicEvent(ev.GUESS_GAVE_UP, {"playerId": player.id, "hasFinished": player.has_finished}),
        )
        _after_slot_closed(room)
        return {"closedBoards": len(closed)}

    @_action(ev.NOTES_UPDATE, ev.GAME_ERROR)
    def notes_update(payload: dict):
        room = _seated_room(payload)
        lobby.update_notes(room, request.sid, payload.get("notes"))

    @socketio.on("disconnect")
    def on_disconnect(reason: Any = None):
        with store.lock:
            departure = store.disconnect(request.sid)
            if departure is None:
                return
            logger.info("player %s disconnected from room %s", departure.player.id, departure.code)
            _announce_departure(departure)

    return broadcaster
