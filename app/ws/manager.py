# app/ws/manager.py
"""
Connection manager for per-user WebSocket notifications.

Usage:
- In FastAPI route: await ws_manager.connect(...) / ws_manager.disconnect(...)
- From async code: await ws_manager.notify_clients(user_id, payload_dict)
- From sync code (e.g., threadpool routes): ws_manager.notify_clients_sync(user_id, payload_dict)
"""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Dict, Optional, Set

import anyio
from fastapi import WebSocket

log = logging.getLogger("whatsgroups.ws")

GROUPS_UPDATED_EVENT = "groups-updated"


class WebSocketConnectionManager:
    def __init__(self) -> None:
        # Map user_id -> set of WebSocket connections
        self.active: Dict[str, Set[WebSocket]] = {}

    async def connect(self, user_id: str, websocket: WebSocket) -> None:
        """Accept and register a websocket under a user."""
        await websocket.accept()
        self.active.setdefault(user_id, set()).add(websocket)
        log.info("WS connected: user=%s total=%d", user_id, self.connection_count(user_id))

    def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        """Unregister a websocket from a user."""
        conns = self.active.get(user_id)
        if conns is not None:
            conns.discard(websocket)
            if not conns:
                # cleanup empty bucket
                self.active.pop(user_id, None)
        log.info("WS disconnected: user=%s total=%d", user_id, self.connection_count(user_id))

    async def notify_clients(self, user_id: str, message_data: dict) -> None:
        """Async: send JSON to all connected clients of a user."""
        connections = list(self.active.get(user_id, set()))
        if not connections:
            log.debug(f"No WebSocket connections for user {user_id}")
            return

        stale: Set[WebSocket] = set()
        sent_count = 0
        for ws in connections:
            try:
                await ws.send_json(message_data)
                sent_count += 1
            except Exception as e:
                # mark stale; we will remove after loop
                log.warning(f"⚠️ WS send failed, marking stale: {e}")
                stale.add(ws)

        log.info(f"✅ Sent to {sent_count}/{len(connections)} clients for user {user_id}")

        if stale:
            alive = self.active.get(user_id, set())
            for ws in stale:
                alive.discard(ws)
            if not alive:
                self.active.pop(user_id, None)
            log.info(f"🧹 Removed {len(stale)} stale connections")

    def connection_count(self, user_id: Optional[str] = None) -> int:
        if user_id is None:
            return sum(len(s) for s in self.active.values())
        return len(self.active.get(user_id, set()))

    def notify_clients_sync(self, user_id: str, message_data: dict) -> None:
        """
        Sync-safe helper to dispatch async notify from non-async contexts.

        Strategy:
        - Try anyio.from_thread.run to hop into the running loop (works from worker threads)
        - Else, if we're on a running loop thread, create_task
        - Else, run the coroutine in a new daemon thread to avoid blocking
        """
        if not self.active.get(user_id):
            return

        try:
            anyio.from_thread.run(self.notify_clients, user_id, message_data)
            return
        except RuntimeError as e:
            # Not in a worker thread bound to an event loop; fallback below
            log.debug(f"anyio.from_thread.run unavailable: {e}")

        try:
            loop = asyncio.get_running_loop()
            loop.create_task(self.notify_clients(user_id, message_data))
            return
        except RuntimeError:
            # No running loop in this thread
            pass

        def _runner():
            try:
                asyncio.run(self.notify_clients(user_id, message_data))
            except Exception as e:
                log.error(f"❌ Background notify failed: {e}")

        threading.Thread(target=_runner, daemon=True).start()


# Singleton manager instance
ws_manager = WebSocketConnectionManager()


def notify_groups_updated(user_id: str, instance_id: str) -> None:
    """Tell the user's frontends that the group list of an instance changed."""
    try:
        ws_manager.notify_clients_sync(
            user_id,
            {"event": GROUPS_UPDATED_EVENT, "data": {"userId": user_id, "instanceId": instance_id}},
        )
    except Exception as e:
        log.error(f"❌ Failed to emit {GROUPS_UPDATED_EVENT} for user {user_id}: {e}")
