OPTIONS = ["Cat", "Dog", "Owl", "Fox"]


def _received(client, name):
    return [pkt["args"][0] for pkt in client.get_received() if pkt["name"] == name]


def _names(client):
    return [pkt["name"] for pkt in client.get_received()]


def _create(client, options=OPTIONS, **extra):
    payload = {"roomName": "Game night", "username": "Alice", "options": list(options), **extra}
    return client.emit("room:create", payload, callback=True)


def _two_player_room(connect, options=OPTIONS, **extra):
    host = connect()
    guest = connect()
    created = _create(host, options, **extra)
    joined = guest.emit("room:join", {"roomCode": created["roomCode"].lower(), "username": "Bob"}, callback=True)
    host.get_received()
    guest.get_received()
    return host, guest, created, joined


def test_create_room(connect):
    host = connect()

    ack = _create(host)

    assert ack["ok"] is True
    assert ack["isAdmin"] is True
    assert ack["roomCode"] == ack["roomCode"].upper()
    received = host.get_received()
    names = [pkt["name"] for pkt in received]
    assert "room:created" in names
    state = [pkt["args"][0] for pkt in received if pkt["name"] == "room:state"][-1]
    assert state["phase"] == "lobby"
    assert [p["name"] for p in state["players"]] == ["Alice"]
    assert [o["text"] for o in state["options"]] == OPTIONS


def test_create_room_validation_error_is_private(connect):
    host = connect()

    ack = _create(host, options=["Only one"])

    assert ack["ok"] is False
    assert ack["error"] == "invalid_options"
    errors = _received(host, "room:error")
    assert errors and errors[0]["message"]


def test_join_flow_and_errors(connect):
    host, guest, created, joined = _two_player_room(connect)
    assert joined["ok"] is True
    assert joined["roomCode"] == created["roomCode"]
    assert joined["isAdmin"] is False

    stranger = connect()
    ack = stranger.emit("room:join", {"roomCode": "ZZZZZZ", "username": "Eve"}, callback=True)
    assert ack == {"ok": False, "error": "room_not_found", "message": "room not found"}
    assert _received(stranger, "room:error")[0]["error"] == "room_not_found"
    # Nobody else hears about it.
    assert host.get_received() == []
    assert guest.get_received() == []


def test_malformed_payload(connect):
    host = connect()
    ack = host.emit("room:create", "not an object", callback=True)
    assert ack["ok"] is False
    assert ack["error"] == "invalid_payload"


def test_full_game_scenario(connect, app_store):
    host, guest, created, _ = _two_player_room(connect, options=["A", "B"])
    code = created["roomCode"]
    p1 = created["playerId"]
    assert guest.emit("room:ready", {"roomCode": code}, callback=True) == {"ok": True, "isReady": True}
    host.get_received()
    guest.get_received()

    assert host.emit("game:start", {"roomCode": code}, callback=True)["ok"] is True
    host_secret = _received(host, "game:secret")
    guest_received = guest.get_received()
    guest_secret = [pkt["args"][0] for pkt in guest_received if pkt["name"] == "game:secret"]
    guest_boards = [pkt["args"][0] for pkt in guest_received if pkt["name"] == "board:state"]
    assert len(host_secret) == 1 and len(guest_secret) == 1
    assert {host_secret[0]["optionText"], guest_secret[0]["optionText"]} == {"A", "B"}
    assert len(guest_boards) == 1
    assert guest_boards[0]["targetPlayerId"] == p1

    room = app_store.get(code)
    guest_id = next(pid for pid in room.players if pid != p1)

    # Out of turn: private rejection, nothing changes.
    ack = guest.emit("game:ask", {"roomCode": code}, callback=True)
    assert ack["error"] == "not_your_turn"
    assert _received(guest, "game:error")
    assert host.get_received() == []

    assert host.emit("game:ask", {"roomCode": code, "question": "Is it a letter?"}, callback=True)["ok"]
    asked = _received(guest, "game:question_asked")
    assert asked[0]["question"] == "Is it a letter?"
    host.get_received()

    host.emit("game:next_turn", {"roomCode": code}, callback=True)
    turn = _received(guest, "game:turn_changed")
    assert turn[-1]["currentTurnPlayerId"] == guest_id
    host.get_received()

    # Missing confirmation is refused.
    ack = guest.emit(
        "guess:submit",
        {"roomCode": code, "optionId": room.secrets[p1], "targetPlayerId": p1},
        callback=True,
    )
    assert ack["error"] == "confirmation_required"
    guest.get_received()

    ack = guest.emit(
        "guess:submit",
        {"roomCode": code, "optionId": room.secrets[p1], "targetPlayerId": p1, "confirmation": "CONFIRMED"},
        callback=True,
    )
    assert ack["ok"] is True
    guest_events = _names(guest)
    assert "guess:confirmed" in guest_events
    host_events = host.get_received()
    made = [pkt["args"][0] for pkt in host_events if pkt["name"] == "guess:made"]
    assert made == [{"playerId": guest_id, "hasFinished": True}]
    assert "guess:confirmed" not in [pkt["name"] for pkt in host_events]

    host.emit(
        "guess:submit",
        {"roomCode": code, "optionId": room.secrets[guest_id], "targetPlayerId": guest_id, "confirmation": "CONFIRMED"},
        callback=True,
    )
    finished = _received(guest, "game:finished")
    assert len(finished) == 1
    pair = next(r for r in finished[0]["results"] if r["guesserId"] == guest_id)
    assert pair["isCorrect"] is True
    assert pair["targetId"] == p1
    assert finished[0]["stats"]["totalCorrect"] == 2


def test_board_updates_stay_private(connect, app_store):
    host, guest, created, _ = _two_player_room(connect)
    code = created["roomCode"]
    host.emit("game:start", {"roomCode": code}, callback=True)
    host.get_received()
    guest.get_received()
    room = app_store.get(code)
    guest_id = next(pid for pid in room.players if pid != created["playerId"])

    ack = host.emit(
        "board:toggle", {"roomCode": code, "optionId": "opt-1", "targetPlayerId": guest_id}, callback=True
    )
    assert ack["ok"] is True
    boards = _received(host, "board:state")
    assert len(boards) == 1
    option = next(o for o in boards[0]["options"] if o["id"] == "opt-1")
    assert option["state"] == "discarded"
    assert option["discardedForPlayerId"] == guest_id
    assert guest.get_received() == []

    host.emit(
        "board:bulk_discard",
        {"roomCode": code, "optionIds": ["opt-2", "opt-3", "missing"], "targetPlayerId": guest_id},
        callback=True,
    )
    boards = _received(host, "board:state")
    states = {o["id"]: o["state"] for o in boards[0]["options"]}
    assert states == {"opt-0": "normal", "opt-1": "discarded", "opt-2": "discarded", "opt-3": "discarded"}
    assert guest.get_received() == []


def test_public_state_hides_private_data(connect, app_store):
    host, guest, created, _ = _two_player_room(connect)
    code = created["roomCode"]
    host.emit("notes:update", {"roomCode": code, "notes": "Bob blinked at Owl"}, callback=True)
    host.emit("game:start", {"roomCode": code}, callback=True)

    states = _received(guest, "room:state")
    text = repr(states)
    assert "Bob blinked" not in text
    assert "secrets" not in states[-1]
    assert all("guesses" not in p for p in states[-1]["players"])
    assert app_store.get(code).players[created["playerId"]].notes == "Bob blinked at Owl"


def test_shared_variant_elimination(connect):
    host, guest, created, _ = _two_player_room(connect, options=["A", "B", "C"], variant="shared")
    code = created["roomCode"]
    host.emit("game:start", {"roomCode": code}, callback=True)
    assert _received(host, "board:state") == []
    guest.get_received()

    ack = host.emit("game:eliminate", {"roomCode": code, "optionIds": ["opt-0"]}, callback=True)
    assert ack["error"] == "wrong_phase"

    host.emit("game:ask", {"roomCode": code}, callback=True)
    host.get_received()
    guest.get_received()
    ack = host.emit("game:eliminate", {"roomCode": code, "optionIds": ["opt-0", "opt-1"]}, callback=True)
    assert ack == {"ok": True, "eliminated": ["opt-0", "opt-1"]}
    guest_events = guest.get_received()
    eliminated = [pkt["args"][0] for pkt in guest_events if pkt["name"] == "game:options_eliminated"]
    assert eliminated == [{"optionIds": ["opt-0", "opt-1"], "remaining": 1}]
    assert "game:finished" in [pkt["name"] for pkt in guest_events]


def test_paired_mode_broadcasts_rotation(connect, app_store):
    host, guest, created, _ = _two_player_room(connect, turnMode="paired")
    code = created["roomCode"]
    host.emit("game:start", {"roomCode": code}, callback=True)
    host.get_received()
    guest.get_received()
    room = app_store.get(code)

    clients = {created["playerId"]: host}
    clients.update({pid: guest for pid in room.players if pid != created["playerId"]})
    rotations = []
    for _ in range(room.rules.pair_turn_budget):
        asker = clients[room.current_turn_player_id]
        assert asker.emit("game:ask", {"roomCode": code}, callback=True)["ok"]
        rotations.extend(_received(host, "game:pair_rotated"))
        guest.get_received()
    assert len(rotations) == 1
    assert room.rotation_index == 1


def test_admin_actions(connect):
    host, guest, created, _ = _two_player_room(connect, options=["A", "B"])
    code = created["roomCode"]

    ack = guest.emit("room:rename", {"roomCode": code, "roomName": "Mine now"}, callback=True)
    assert ack["error"] == "only_admin"

    assert host.emit("room:rename", {"roomCode": code, "roomName": "Renamed"}, callback=True)["ok"]
    state = _received(guest, "room:state")[-1]
    assert state["name"] == "Renamed"

    ack = host.emit("room:option_remove", {"roomCode": code, "optionId": "opt-0"}, callback=True)
    assert ack["error"] == "too_few_options"

    ack = host.emit("room:option_add", {"roomCode": code, "optionText": "C"}, callback=True)
    assert ack == {"ok": True, "optionId": "opt-2"}
    assert host.emit("room:option_remove", {"roomCode": code, "optionId": "opt-0"}, callback=True)["ok"]

    ack = host.emit("room:configure", {"roomCode": code, "variant": "personal", "turnMode": "paired"}, callback=True)
    assert ack == {"ok": True, "variant": "personal", "turnMode": "paired"}
    ack = host.emit("room:configure", {"roomCode": code, "variant": "chaos"}, callback=True)
    assert ack["ok"] is False


def test_non_admin_cannot_kick(connect, app_store):
    host, guest, created, _ = _two_player_room(connect)
    code = created["roomCode"]

    ack = guest.emit("room:kick", {"roomCode": code, "playerId": created["playerId"]}, callback=True)

    assert ack["error"] == "only_admin"
    assert len(app_store.get(code).players) == 2
    assert host.get_received() == []


def test_kick_notifies_target(connect, app_store):
    host, guest, created, _ = _two_player_room(connect)
    code = created["roomCode"]
    guest_id = next(pid for pid in app_store.get(code).players if pid != created["playerId"])

    assert host.emit("room:kick", {"roomCode": code, "playerId": guest_id}, callback=True)["ok"]

    kicked = _received(guest, "room:kicked")
    assert kicked and kicked[0]["roomCode"] == code
    left = _received(host, "room:player_left")
    assert left[0]["playerId"] == guest_id
    assert list(app_store.get(code).players) == [created["playerId"]]


def test_admin_disconnect_promotes_next_player(connect, app_store):
    host, guest, created, _ = _two_player_room(connect)
    code = created["roomCode"]

    host.disconnect()

    left = _received(guest, "room:player_left")
    room = app_store.get(code)
    guest_id = next(iter(room.players))
    assert left[0]["promotedAdminId"] == guest_id
    assert room.players[guest_id].is_admin

    guest.disconnect()
    assert app_store.get(code) is None


def test_http_health_and_room_lookup(connect, client):
    assert client.get("/api/health").get_json() == {"ok": True, "rooms": 0}

    host = connect()
    code = _create(host)["roomCode"]

    res = client.get(f"/api/rooms/{code.lower()}")
    assert res.status_code == 200
    assert res.get_json()["code"] == code
    assert client.get("/api/health").get_json()["rooms"] == 1

    res = client.get("/api/rooms/NOPE99")
    assert res.status_code == 404
    assert res.get_json() == {"error": "room_not_found"}
