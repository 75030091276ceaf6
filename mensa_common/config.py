"""
Configuration for the canteen menu pipeline
Values are read once from the environment, with defaults for the Leipzig site
"""

import os
from pathlib import Path


MENU_URL = os.environ.get(
    'MENSA_MENU_URL',
    'https://www.studentenwerk-leipzig.de/mensen-cafeterien/speiseplan'
)

# Fixed site identifier of the canteen that is queried
LOCATION_ID = int(os.environ.get('MENSA_LOCATION_ID', '140'))

CACHE_DIR = Path(os.environ.get('MENSA_CACHE_DIR', 'cache'))
# Tiers inside CACHE_DIR: raw page snapshots and parsed menus
RAW_SUBDIR = 'raw'
PARSED_SUBDIR = 'parsed'

# Transport timeout for a single GET, in seconds
REQUEST_TIMEOUT = float(os.environ.get('MENSA_REQUEST_TIMEOUT', '10'))

LOG_LEVEL = os.environ.get('MENSA_LOG_LEVEL', 'INFO')
