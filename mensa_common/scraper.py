"""
Canteen menu fetcher
Downloads the server-rendered menu page for one location and date
"""

import logging
from typing import Optional

import requests

from mensa_common import config
from mensa_common.models import CacheKey, FetchError


logger = logging.getLogger(__name__)

# The menu site serves UTF-8 but does not always say so
DEFAULT_ENCODING = 'utf-8'


class MenuFetcher:
    """Issues the GET request for a (location, date) menu page"""

    def __init__(self, base_url: str = config.MENU_URL, timeout: float = config.REQUEST_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def build_url(self, key: CacheKey) -> str:
        """The cache key is the query string, so the URL is derived from it"""
        return f"{self.base_url}?{key}"

    def fetch(self, location: int, iso_date: str) -> str:
        """
        Fetch the menu page for a location and date

        Args:
            location: Numeric site id
            iso_date: Requested date as YYYY-MM-DD

        Returns:
            Response body as text

        Raises:
            FetchError: On transport failure or non-success status
        """
        url = self.build_url(CacheKey(location, iso_date))
        logger.info("Fetching %s", url)

        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise FetchError(url, str(e), status=status) from e
        except requests.RequestException as e:
            raise FetchError(url, str(e)) from e

        # requests falls back to ISO-8859-1 for text/* without a charset
        if 'charset' not in response.headers.get('Content-Type', '').lower():
            response.encoding = DEFAULT_ENCODING

        return response.text
