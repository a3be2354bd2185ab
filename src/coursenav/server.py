"""aiohttp server for Coursenav.

Application factory and route registration.
"""

from aiohttp import web

from coursenav.api.categories import create_categories_routes
from coursenav.api.config import create_config_routes
from coursenav.api.navigation import create_navigation_routes
from coursenav.api.ordering import create_ordering_routes
from coursenav.api.pages import create_pages_routes
from coursenav.api.search import create_search_routes
from coursenav.api.toc import create_toc_routes
from coursenav.app_keys import categories_key, live_reload_enabled_key, store_key
from coursenav.config import Config
from coursenav.core.categories import CategoryAggregator, CategoryCache, CategoryCatalog
from coursenav.core.store import ContentStore
from coursenav.live import LiveReloadManager, create_live_reload_routes

live_reload_manager_key = web.AppKey("live_reload_manager", LiveReloadManager)


def create_app(
    config: Config,
    *,
    catalog: CategoryCatalog | None = None,
) -> web.Application:
    """Create aiohttp application.

    Args:
        config: Application configuration
        catalog: Category icon/description lookup (default: built-in table)

    Returns:
        Configured aiohttp application
    """
    app = web.Application()

    store = ContentStore(config.content.index)
    aggregator = CategoryAggregator(catalog) if catalog is not None else CategoryAggregator()
    categories = CategoryCache(aggregator)
    store.add_refresh_listener(categories.invalidate)

    app[store_key] = store
    app[categories_key] = categories
    app[live_reload_enabled_key] = config.live_reload.enabled

    app.router.add_routes(create_config_routes())
    app.router.add_routes(create_toc_routes())
    app.router.add_routes(create_navigation_routes())
    app.router.add_routes(create_pages_routes())
    app.router.add_routes(create_ordering_routes())
    app.router.add_routes(create_categories_routes())
    app.router.add_routes(create_search_routes())

    if config.live_reload.enabled:
        manager = LiveReloadManager(store, watch_patterns=config.live_reload.watch_patterns)
        app[live_reload_manager_key] = manager
        app.router.add_routes(create_live_reload_routes(manager))
        app.on_startup.append(_start_live_reload)
        app.on_cleanup.append(_stop_live_reload)

    return app


async def _start_live_reload(app: web.Application) -> None:
    """Start live reload on application startup."""
    await app[live_reload_manager_key].start()


async def _stop_live_reload(app: web.Application) -> None:
    """Stop live reload on application cleanup."""
    await app[live_reload_manager_key].stop()


def run_server(config: Config) -> None:
    """Run the server.

    Args:
        config: Application configuration
    """
    app = create_app(config)
    web.run_app(app, host=config.server.host, port=config.server.port)
