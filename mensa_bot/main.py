#!/usr/bin/env python3
"""
Canteen menu CLI
Prints today's, tomorrow's or the day after's menu as a Telegram message
"""

import argparse
import logging
import sys
from typing import List, Optional

from mensa_common import config
from mensa_common.date_resolver import resolve_date
from mensa_common.models import FetchError, NoMenuPublished, StructuralExtractionFault
from mensa_bot.formatter import build_message, build_no_menu_message
from mensa_bot.service import MenuService


logger = logging.getLogger(__name__)

COMMANDS = {
    'heute': 0,
    'morgen': 1,
    'uebermorgen': 2,
}


def run(mode: int, service: Optional[MenuService] = None) -> int:
    """
    Print the menu message for a day offset

    Returns:
        Exit code (0 for success or no published menu, 1 for failures)
    """
    service = service or MenuService()

    try:
        result = service.get_menu_result(mode)
    except NoMenuPublished as e:
        logger.info("No menu published for %s", e.requested)
        print(build_no_menu_message(resolve_date(mode, service.today())))
        return 0
    except FetchError as e:
        logger.error("Could not fetch the menu: %s", e)
        return 1
    except StructuralExtractionFault as e:
        logger.error("Could not read the menu page: %s", e)
        return 1

    print(build_message(result))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = argparse.ArgumentParser(description='Print the canteen menu as a Telegram message')
    parser.add_argument('command', nargs='?', default='heute', choices=list(COMMANDS),
                        help='Day to show (default: heute)')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=config.LOG_LEVEL,
        stream=sys.stderr,
        format='%(levelname)s %(name)s: %(message)s'
    )

    try:
        return run(COMMANDS[args.command])
    except KeyboardInterrupt:
        print("\n\nInterrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
