from unittest.mock import AsyncMock

from fastapi import FastAPI, WebSocketDisconnect
from fastapi.testclient import TestClient

from verba.routers import rooms


def test_refresh_is_broadcast_to_room_members(monkeypatch):
	monkeypatch.setattr(rooms, "hub", rooms.RoomHub())
	app = FastAPI()
	app.include_router(rooms.router)
	client = TestClient(app)

	with client.websocket_connect("/ws/rooms/42") as first, client.websocket_connect("/ws/rooms/42") as second:
		first.send_json({"refresh": True})
		assert first.receive_json() == {"refresh": True}
		assert second.receive_json() == {"refresh": True}


async def test_hub_drops_sockets_that_fail_to_send():
	hub = rooms.RoomHub()
	alive = AsyncMock()
	dead = AsyncMock()
	dead.send_json.side_effect = RuntimeError("closed")
	hub.join("r", alive)
	hub.join("r", dead)

	await hub.broadcast("r", "lesson")

	alive.send_json.assert_awaited_once_with({"refresh": "lesson"})
	assert hub.members("r") == {alive}


def test_leave_removes_empty_rooms():
	hub = rooms.RoomHub()
	ws = object()
	hub.join("r", ws)
	hub.leave("r", ws)
	assert hub.members("r") == set()
	hub.leave("missing", ws)


async def test_socket_joins_only_after_accept(monkeypatch):
	monkeypatch.setattr(rooms, "hub", rooms.RoomHub())
	other = AsyncMock()
	rooms.hub.join("r", other)

	async def accept_while_room_is_busy():
		await rooms.hub.broadcast("r", "early")

	ws = AsyncMock()
	ws.accept.side_effect = accept_while_room_is_busy
	ws.receive_json.side_effect = [{"refresh": "x"}, WebSocketDisconnect()]

	await rooms.room_socket(ws, "r")

	ws.send_json.assert_awaited_once_with({"refresh": "x"})
	assert other.send_json.await_count == 2
	assert rooms.hub.members("r") == {other}
