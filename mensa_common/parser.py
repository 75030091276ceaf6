"""
Menu page parser
Extracts meal groups from the rendered canteen page and validates the date it reports
"""

import logging
import re
from datetime import date
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from mensa_common.models import DayMenu, MealGroup, NoMenuPublished, SingleMeal, StructuralExtractionFault


logger = logging.getLogger(__name__)

DATE_ECHO_SELECTOR = 'select#edit-date > option[selected]'
CONTAINER_SELECTOR = 'section.meals'
TITLE_CLASS = 'title-prim'
DISH_BLOCK_CLASSES = ('accordion', 'u-block')
NAME_SELECTOR = 'header > div > div > h4'
PRICE_SELECTOR = 'header > div > div > p'
EXTRAS_SELECTOR = 'details > ul > li'

# Siblings inspected after a title before giving up on its dish block
MAX_SIBLING_LOOKAHEAD = 10

_ECHO_DATE_RE = re.compile(r'(\d{2})\.(\d{2})\.(\d{4})\s*$')


def clean_text(text: str) -> str:
    """Collapse whitespace runs to single spaces and trim"""
    return re.sub(r'\s+', ' ', text).strip()


def last_line(text: str) -> str:
    """Last non-empty line of a multi-line field, trimmed"""
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return lines[-1] if lines else ''


def _has_classes(element: Tag, classes) -> bool:
    element_classes = element.get('class') or []
    return all(c in element_classes for c in classes)


def parse_echo_date(soup: BeautifulSoup) -> date:
    """
    Read the date the page reports as currently displayed

    The selected option reads like "Dienstag, 05.03.2024".

    Raises:
        StructuralExtractionFault: If the control is missing or unreadable
    """
    option = soup.select_one(DATE_ECHO_SELECTOR)
    if option is None:
        raise StructuralExtractionFault(f"date control '{DATE_ECHO_SELECTOR}' not found")

    text = option.get_text()
    match = _ECHO_DATE_RE.search(text)
    if not match:
        raise StructuralExtractionFault(f"unreadable date in date control: {text!r}")

    day, month, year = match.groups()
    try:
        return date(int(year), int(month), int(day))
    except ValueError as e:
        raise StructuralExtractionFault(f"invalid date in date control: {text!r}") from e


def find_dish_block(title: Tag, limit: int = MAX_SIBLING_LOOKAHEAD) -> Optional[Tag]:
    """
    Find the dish block belonging to a section title

    Walks the following siblings, skipping secondary headings and other
    decoration, until an element carrying the dish block classes shows up.

    Args:
        title: The primary section title element
        limit: Maximum number of siblings to inspect

    Returns:
        The dish block, or None if the chain ends, the next section title
        starts or the limit is reached first
    """
    sibling = title.find_next_sibling()
    inspected = 0

    while sibling is not None and inspected < limit:
        if _has_classes(sibling, DISH_BLOCK_CLASSES):
            return sibling
        if _has_classes(sibling, (TITLE_CLASS,)):
            return None
        inspected += 1
        sibling = sibling.find_next_sibling()

    return None


def parse_dish(dish: Tag) -> SingleMeal:
    """Turn one dish element of a dish block into a SingleMeal"""
    name = dish.select_one(NAME_SELECTOR)
    if name is None:
        raise StructuralExtractionFault(f"dish without name heading '{NAME_SELECTOR}'")

    price = dish.select_one(PRICE_SELECTOR)
    if price is None:
        raise StructuralExtractionFault(f"dish {clean_text(name.get_text())!r} without price paragraph")

    extras = [clean_text(li.get_text()) for li in dish.select(EXTRAS_SELECTOR)]

    return SingleMeal(
        name=clean_text(name.get_text()),
        extras=extras,
        price=last_line(price.get_text())
    )


def parse_groups(container: Tag) -> List[MealGroup]:
    """Walk the direct children of the menu container and collect meal groups"""
    groups = []

    for child in container.find_all(recursive=False):
        if not _has_classes(child, (TITLE_CLASS,)):
            continue

        label = clean_text(child.get_text())
        block = find_dish_block(child)
        if block is None:
            raise StructuralExtractionFault(f"no dish block found for group {label!r}")

        meals = [parse_dish(dish) for dish in block.find_all(recursive=False)]
        if not meals:
            raise StructuralExtractionFault(f"group {label!r} has no dishes")

        groups.append(MealGroup(label=label, meals=meals))

    return groups


def parse_menu(html: str, requested_date: str) -> DayMenu:
    """
    Parse a menu page into a DayMenu

    Args:
        html: Raw page HTML
        requested_date: Date that was requested, as YYYY-MM-DD

    Returns:
        DayMenu for the requested date

    Raises:
        NoMenuPublished: If the page shows a different date than requested
        StructuralExtractionFault: If expected markup is missing
    """
    soup = BeautifulSoup(html, 'html.parser')

    published = parse_echo_date(soup)
    if published.isoformat() != requested_date:
        raise NoMenuPublished(requested_date, published.isoformat())

    container = soup.select_one(CONTAINER_SELECTOR)
    if container is None:
        raise StructuralExtractionFault(f"menu container '{CONTAINER_SELECTOR}' not found")

    groups = parse_groups(container)
    logger.debug("Parsed %d groups for %s", len(groups), requested_date)

    return DayMenu(date=published, groups=groups)
