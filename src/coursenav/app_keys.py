"""Application keys for type-safe app configuration access."""

from aiohttp import web

from coursenav.core.categories import CategoryCache
from coursenav.core.store import ContentStore

store_key = web.AppKey("store", ContentStore)
categories_key = web.AppKey("categories", CategoryCache)
live_reload_enabled_key = web.AppKey("live_reload_enabled", bool)
