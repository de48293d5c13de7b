from __future__ import annotations
import logging
from typing import Any, Dict, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect


logger = logging.getLogger(__name__)

router = APIRouter(tags=["rooms"])


class RoomHub:
	"""Tracks which sockets are in which room and fans refresh events out."""

	def __init__(self) -> None:
		self._rooms: Dict[str, Set[WebSocket]] = {}

	def join(self, room_id: str, ws: WebSocket) -> None:
		self._rooms.setdefault(room_id, set()).add(ws)
		logger.info("Socket joined room %s (%d members)", room_id, len(self._rooms[room_id]))

	def leave(self, room_id: str, ws: WebSocket) -> None:
		members = self._rooms.get(room_id)
		if not members:
			return
		members.discard(ws)
		if not members:
			del self._rooms[room_id]

	def members(self, room_id: str) -> Set[WebSocket]:
		return set(self._rooms.get(room_id, ()))

	async def broadcast(self, room_id: str, refresh: Any) -> None:
		for ws in self.members(room_id):
			try:
				await ws.send_json({"refresh": refresh})
			except (RuntimeError, WebSocketDisconnect):
				# Closed under us
				self.leave(room_id, ws)


hub = RoomHub()


@router.websocket("/ws/rooms/{room_id}")
async def room_socket(ws: WebSocket, room_id: str):
	await ws.accept()
	hub.join(room_id, ws)
	try:
		while True:
			data = await ws.receive_json()
			refresh = data.get("refresh") if isinstance(data, dict) else data
			await hub.broadcast(room_id, refresh)
	except WebSocketDisconnect:
		pass
	finally:
		hub.leave(room_id, ws)
