"""WebSocket-based live reload for development mode.

Monitors the content index for changes, refreshes the content store, and
notifies connected clients via WebSocket so they refetch navigation.
"""

import asyncio
import json
import logging
import weakref
from pathlib import Path

from aiohttp import WSMsgType, web
from watchfiles import Change, awatch

from coursenav.core.store import ContentStore

logger = logging.getLogger(__name__)


class LiveReloadManager:
    """Manages WebSocket connections and file watching for live reload.

    Coordinates between file system watcher and connected WebSocket clients
    to push a reload event whenever the content index changes.
    """

    def __init__(
        self,
        store: ContentStore,
        watch_patterns: list[str] | None = None,
    ) -> None:
        """Initialize the live reload manager.

        Args:
            store: Content store to refresh on changes
            watch_patterns: Glob patterns relative to the index directory
                (default: the index file name)
        """
        self._store = store
        self._index_path = store.index_path.resolve()
        self._watch_dir = self._index_path.parent
        self._watch_patterns = watch_patterns or [store.index_path.name]
        self._connections: weakref.WeakSet[web.WebSocketResponse] = weakref.WeakSet()
        self._watch_task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        """Start the file watcher."""
        if self._watch_task is not None:
            return
        self._watch_task = asyncio.create_task(self._watch_files())

    async def stop(self) -> None:
        """Stop the file watcher and close all connections."""
        if self._watch_task is not None:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
            self._watch_task = None

        for ws in list(self._connections):
            await ws.close()

    async def handle_websocket(self, request: web.Request) -> web.WebSocketResponse:
        """Handle WebSocket connection for live reload.

        Args:
            request: aiohttp request

        Returns:
            WebSocket response
        """
        ws = web.WebSocketResponse()
        await ws.prepare(request)

        self._connections.add(ws)

        try:
            async for msg in ws:
                if msg.type == WSMsgType.ERROR:
                    break
        finally:
            self._connections.discard(ws)

        return ws

    async def _watch_files(self) -> None:
        """Watch for file changes and broadcast reload events."""
        self._watch_dir.mkdir(parents=True, exist_ok=True)
        async for changes in awatch(self._watch_dir):
            changed = [
                Path(path_str)
                for change_type, path_str in changes
                if self._is_relevant(change_type, Path(path_str))
            ]
            if not changed:
                continue

            self._store.reload()
            for path in changed:
                await self._broadcast_reload(str(path.relative_to(self._watch_dir)))

    def _is_relevant(self, change_type: Change, path: Path) -> bool:
        # A deleted index empties the store, which clients must see too
        if change_type == Change.deleted and path != self._index_path:
            return False
        return self._matches_patterns(path)

    def _matches_patterns(self, path: Path) -> bool:
        """Check if a path matches any watch pattern.

        Args:
            path: Path to check

        Returns:
            True if path matches any pattern
        """
        try:
            relative = path.relative_to(self._watch_dir)
        except ValueError:
            return False

        return any(relative.match(pattern) for pattern in self._watch_patterns)

    async def _broadcast_reload(self, path: str) -> None:
        """Broadcast reload event to all connected clients.

        Args:
            path: Changed file, relative to the watched directory
        """
        if not self._connections:
            return

        message = json.dumps({"type": "reload", "path": path})

        for ws in list(self._connections):
            if ws.closed:
                continue
            try:
                await ws.send_str(message)
            except ConnectionResetError:
                # Client disconnected mid-send, will be cleaned up by WeakSet
                logger.debug("Live reload client disconnected during broadcast")


def create_live_reload_routes(manager: LiveReloadManager) -> list[web.RouteDef]:
    """Create routes for live reload WebSocket.

    Args:
        manager: LiveReloadManager instance

    Returns:
        List of route definitions
    """
    return [web.get("/ws/live-reload", manager.handle_websocket)]
