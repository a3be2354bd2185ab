"""Live reload support for development mode."""

from coursenav.live.reload import LiveReloadManager, create_live_reload_routes

__all__ = ["LiveReloadManager", "create_live_reload_routes"]
