from __future__ import annotations

from flask_socketio import SocketIO

from ..game.models import Room
from ..game.snapshots import room_public_state
from .events import ROOM_STATE, PrivateEvent, PublicEvent


class Broadcaster:
    """The only path from game state to the wire.

    ``to_room`` fans out to every connection in the Socket.IO room named after
    the room code and refuses anything but a PublicEvent; ``to_player`` targets a
    single sid and refuses anything but a PrivateEvent.
    """

    def __init__(self, socketio: SocketIO):
        self.socketio = socketio

    def to_room(self, room_code: str, event: PublicEvent) -> None:
        if not isinstance(event, PublicEvent):
            raise TypeError("only public events can be broadcast to a room")
        self.socketio.emit(event.name, event.payload, to=room_code)

    def to_player(self, sid: str, event: PrivateEvent) -> None:
        if not isinstance(event, PrivateEvent):
            raise TypeError("only private events can be sent to a single player")
        self.socketio.emit(event.name, event.payload, to=sid)

    def room_state(self, room: Room) -> None:
        self.to_room(room.code, PublicEvent(ROOM_STATE, room_public_state(room)))
