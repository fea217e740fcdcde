"""Rotation helpers shared by the turn machine and the board engine.

Players are always walked in join order (the insertion order of
``Room.players``). A player counts as active while at least one of their
guess slots is still open.
"""

from __future__ import annotations

from typing import Iterable

from .models import Room


def active_players(room: Room, exclude: Iterable[str] = ()) -> list[str]:
    skip = set(exclude)
    return [
        pid
        for pid, p in room.players.items()
        if pid not in skip and not p.has_finished
    ]


def get_active_pair(room: Room, exclude: Iterable[str] = ()) -> list[str]:
    """Return the asks/responds pair for the current rotation.

    The pair is ``active[i]`` and ``active[(i + 1) % n]`` with
    ``i = rotation_index % n``. With fewer than two active players the
    active list itself is returned.
    """
    active = active_players(room, exclude)
    n = len(active)
    if n < 2:
        return active
    i = room.rotation_index % n
    return [active[i], active[(i + 1) % n]]


def next_unfinished(room: Room, after: str | None, exclude: Iterable[str] = ()) -> str | None:
    """Next active player after ``after`` in join order, wrapping around.

    ``after`` itself is a candidate last, so a lone active player keeps the
    turn. Returns None when nobody is active.
    """
    skip = set(exclude)
    ids = list(room.players.keys())
    if not ids:
        return None
    start = ids.index(after) if after in ids else -1
    for step in range(1, len(ids) + 1):
        pid = ids[(start + step) % len(ids)]
        if pid in skip:
            continue
        if not room.players[pid].has_finished:
            return pid
    return None
