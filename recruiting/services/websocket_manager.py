"""
WebSocket connection manager for real-time event delivery.

Keeps the process-wide mapping of user id -> open WebSocket connections
(the user's private channel) and delivers events to them. Nothing here is
persisted: the registry starts empty on every process start, and a user
without an open connection simply misses live pushes.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Set
from fastapi import WebSocket

from recruiting.services import auth_service

logger = logging.getLogger(__name__)

# Close code sent when a connection presents a bad credential (policy violation)
POLICY_VIOLATION_CLOSE_CODE = 1008


def _encode(event: str, payload: Any) -> str:
    return json.dumps({"event": event, "data": payload}, default=str)


class WebSocketManager:
    """Manages WebSocket connections grouped into per-user private channels."""

    def __init__(self):
        """Initialize the WebSocket manager."""
        # user_id -> set of open connections
        self._connections: Dict[int, Set[WebSocket]] = {}
        # Guards _connections; never held across a send
        self._lock = asyncio.Lock()
        # Serializes sends per user so events arrive in emit order
        self._send_locks: Dict[int, asyncio.Lock] = {}

    async def accept(self, websocket: WebSocket, token: Optional[str]) -> Optional[int]:
        """
        Authenticate and register an incoming connection.

        The credential is checked before the connection joins any channel.
        On failure the socket is closed with a policy-violation code.

        Args:
            websocket: Incoming WebSocket connection (already accepted at transport level)
            token: Bearer credential presented by the client

        Returns:
            The authenticated user id, or None if the connection was refused
        """
        if not token:
            await websocket.close(code=POLICY_VIOLATION_CLOSE_CODE, reason="Authentication required")
            return None

        payload = auth_service.verify_token(token)
        user_id = payload.get("user_id") if payload else None
        if user_id is None:
            logger.warning("Refusing WebSocket connection with invalid token")
            await websocket.close(code=POLICY_VIOLATION_CLOSE_CODE, reason="Invalid token")
            return None

        await self.connect(user_id, websocket)
        return user_id

    async def connect(self, user_id: int, websocket: WebSocket):
        """
        Register a WebSocket connection for a user.

        Args:
            user_id: ID of the user
            websocket: WebSocket connection object
        """
        async with self._lock:
            if user_id not in self._connections:
                self._connections[user_id] = set()
            self._connections[user_id].add(websocket)
            total = len(self._connections[user_id])
        logger.info(f"WebSocket connected for user {user_id} (total connections: {total})")

    async def disconnect(self, user_id: int, websocket: WebSocket):
        """
        Remove a WebSocket connection for a user.

        Args:
            user_id: ID of the user
            websocket: WebSocket connection object
        """
        async with self._lock:
            self._discard(user_id, [websocket])
        logger.info(f"WebSocket disconnected for user {user_id}")

    def _discard(self, user_id: int, websockets: Iterable[WebSocket]):
        # Caller holds self._lock
        connections = self._connections.get(user_id)
        if connections is None:
            return
        for websocket in websockets:
            connections.discard(websocket)
        if not connections:
            del self._connections[user_id]
            send_lock = self._send_locks.get(user_id)
            if send_lock is not None and not send_lock.locked():
                del self._send_locks[user_id]

    async def emit_to_user(self, user_id: int, event: str, payload: Any) -> bool:
        """
        Deliver an event to every open connection of a user.

        Best-effort: a user with no connections drops the event, and a failing
        connection is pruned without raising.

        Args:
            user_id: ID of the recipient user
            event: Event name (e.g. "notification:new")
            payload: JSON-serializable payload

        Returns:
            True if the event reached at least one connection, False otherwise
        """
        async with self._lock:
            if user_id not in self._connections:
                return False
            send_lock = self._send_locks.setdefault(user_id, asyncio.Lock())

        sent = False
        dead: List[WebSocket] = []
        async with send_lock:
            async with self._lock:
                connections = list(self._connections.get(user_id, ()))

            message = _encode(event, payload)
            # Send outside the registry lock to avoid blocking connect/disconnect
            for websocket in connections:
                try:
                    await websocket.send_text(message)
                    sent = True
                except Exception as e:
                    logger.warning(f"Error sending '{event}' to user {user_id}: {e}")
                    dead.append(websocket)

        async with self._lock:
            if dead:
                self._discard(user_id, dead)
            # The user may have gone offline while this send held the lock
            if user_id not in self._connections:
                lock = self._send_locks.get(user_id)
                if lock is not None and not lock.locked():
                    del self._send_locks[user_id]
        return sent

    async def broadcast(self, event: str, payload: Any) -> int:
        """
        Deliver an event to every connected user.

        Returns:
            Number of users the event reached
        """
        reached = 0
        for user_id in await self.connected_user_ids():
            if await self.emit_to_user(user_id, event, payload):
                reached += 1
        return reached

    async def connected_user_ids(self) -> List[int]:
        """Snapshot of user ids with at least one open connection."""
        async with self._lock:
            return list(self._connections.keys())

    async def get_connection_count(self, user_id: int) -> int:
        """
        Get the number of active connections for a user.

        Args:
            user_id: ID of the user

        Returns:
            Number of active connections
        """
        async with self._lock:
            return len(self._connections.get(user_id, ()))

    async def close_all(self):
        """Close every connection and empty the registry (process shutdown)."""
        async with self._lock:
            connections = [ws for conns in self._connections.values() for ws in conns]
            self._connections.clear()
            self._send_locks.clear()
        for websocket in connections:
            try:
                await websocket.close(code=1001, reason="Server shutting down")
            except Exception as e:
                logger.debug(f"Ignoring error while closing WebSocket: {e}")


# Global WebSocket manager instance
_websocket_manager: Optional[WebSocketManager] = None


def get_websocket_manager() -> WebSocketManager:
    """
    Get the global WebSocket manager instance.

    Returns:
        WebSocketManager instance
    """
    global _websocket_manager
    if _websocket_manager is None:
        _websocket_manager = WebSocketManager()
    return _websocket_manager
