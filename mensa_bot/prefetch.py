#!/usr/bin/env python3
"""
Menu prefetch job
Warms the cache for every date a user could ask for today, one worker per date
"""

import concurrent.futures
import logging
import sys
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional

from mensa_common import config
from mensa_common.cache import CacheStore, FileCacheStore
from mensa_common.date_resolver import prefetch_dates
from mensa_common.models import CacheKey, FetchError, NoMenuPublished, StructuralExtractionFault
from mensa_common.scraper import MenuFetcher


logger = logging.getLogger(__name__)

UPDATED = 'updated'
NO_MENU = 'no_menu'
FETCH_ERROR = 'fetch_error'
STRUCTURAL_FAULT = 'structural_fault'
ERROR = 'error'

SUCCESS_STATUSES = (UPDATED, NO_MENU)


@dataclass
class PrefetchOutcome:
    date: date
    status: str
    detail: str = ''

    @property
    def ok(self) -> bool:
        return self.status in SUCCESS_STATUSES


class PrefetchOrchestrator:
    """
    Fetches and reconciles every prefetch date concurrently

    Each date is an independent unit of work on its own cache key: a failure
    is recorded in that date's outcome and never stops the other dates.
    """

    def __init__(self, fetcher: Optional[MenuFetcher] = None, store: Optional[CacheStore] = None,
                 location: int = config.LOCATION_ID, today: Callable[[], date] = date.today):
        self.fetcher = fetcher or MenuFetcher()
        self.store = store or FileCacheStore()
        self.location = location
        self.today = today

    def prefetch_date(self, day: date) -> PrefetchOutcome:
        """Fetch and reconcile a single date, turning failures into an outcome"""
        key = CacheKey.for_date(self.location, day)

        try:
            raw = self.fetcher.fetch(key.location, key.date)
            menu = self.store.reconcile(key, raw)
        except NoMenuPublished as e:
            logger.info("No menu published for %s yet (source shows %s)", e.requested, e.published)
            return PrefetchOutcome(day, NO_MENU, str(e))
        except FetchError as e:
            logger.warning("Fetch failed for %s: %s", day, e)
            return PrefetchOutcome(day, FETCH_ERROR, str(e))
        except StructuralExtractionFault as e:
            logger.error("Markup changed? Extraction failed for %s: %s", day, e)
            return PrefetchOutcome(day, STRUCTURAL_FAULT, str(e))
        except Exception as e:
            logger.exception("Unexpected failure prefetching %s", day)
            return PrefetchOutcome(day, ERROR, repr(e))

        return PrefetchOutcome(day, UPDATED, f"{len(menu.groups)} groups")

    def prefetch_all(self) -> List[PrefetchOutcome]:
        """
        Prefetch every distinct date reachable today

        Returns:
            One outcome per date, sorted by date. Returns only after every
            date has finished.
        """
        dates = prefetch_dates(self.today())
        logger.info("Prefetching %d date(s): %s", len(dates), ', '.join(d.isoformat() for d in dates))

        outcomes = []
        with concurrent.futures.ThreadPoolExecutor(max_workers=len(dates)) as executor:
            futures = [executor.submit(self.prefetch_date, day) for day in dates]
            for future in concurrent.futures.as_completed(futures):
                outcomes.append(future.result())

        return sorted(outcomes, key=lambda outcome: outcome.date)


def main() -> int:
    """Entry point for the periodic prefetch job"""
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    outcomes = PrefetchOrchestrator().prefetch_all()
    for outcome in outcomes:
        logger.info("%s: %s %s", outcome.date.isoformat(), outcome.status, outcome.detail)

    failed = [outcome for outcome in outcomes if not outcome.ok]
    if failed:
        logger.error("%d of %d date(s) failed", len(failed), len(outcomes))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
