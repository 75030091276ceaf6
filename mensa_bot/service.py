"""
Menu service
Single entry point for the message layer: the structured menu for a day offset
"""

import logging
from datetime import date
from typing import Callable, Optional

from mensa_common import config
from mensa_common.cache import CacheStore, FileCacheStore
from mensa_common.date_resolver import resolve_date
from mensa_common.models import CacheKey, DayMenu, MenuResult
from mensa_common.scraper import MenuFetcher


logger = logging.getLogger(__name__)


class MenuService:
    """
    Resolves a day offset, serves the cached menu or fetches and stores it

    FetchError and NoMenuPublished propagate unchanged.
    """

    def __init__(self, fetcher: Optional[MenuFetcher] = None, store: Optional[CacheStore] = None,
                 location: int = config.LOCATION_ID, today: Callable[[], date] = date.today):
        self.fetcher = fetcher or MenuFetcher()
        self.store = store or FileCacheStore()
        self.location = location
        self.today = today

    def get_menu_result(self, mode: int) -> MenuResult:
        """Menu for the day offset together with the date it resolved to"""
        resolved = resolve_date(mode, self.today())
        key = CacheKey.for_date(self.location, resolved.date)

        entry = self.store.read(key)
        if entry is not None:
            logger.info("Serving %s from cache", key)
            return MenuResult(resolved=resolved, menu=entry.structured)

        raw = self.fetcher.fetch(key.location, key.date)
        menu = self.store.reconcile(key, raw)
        return MenuResult(resolved=resolved, menu=menu)

    def get_menu(self, mode: int) -> DayMenu:
        return self.get_menu_result(mode).menu
