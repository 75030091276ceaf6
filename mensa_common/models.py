"""
Data model and error types shared by the menu pipeline
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional


class MenuError(Exception):
    """Base class for every failure raised by the menu pipeline"""


class FetchError(MenuError):
    """Transport failure or non-success HTTP status"""

    def __init__(self, url: str, reason: str, status: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status = status
        super().__init__(f"Fetching {url} failed: {reason}")


class NoMenuPublished(MenuError):
    """
    The source answered with a different date than the one requested

    This is an expected outcome: the site silently substitutes the nearest
    day it has a plan for. Callers stop here, they never retry with the
    substituted date.
    """

    def __init__(self, requested: str, published: str):
        self.requested = requested
        self.published = published
        super().__init__(f"No menu published for {requested} (source shows {published})")


class StructuralExtractionFault(MenuError):
    """An expected markup landmark is missing or malformed"""


@dataclass(frozen=True)
class CacheKey:
    """Storage address of one (location, date) pair, also the wire query string"""
    location: int
    date: str

    def __str__(self) -> str:
        return f"location={self.location}&date={self.date}"

    @classmethod
    def for_date(cls, location: int, day: date) -> 'CacheKey':
        return cls(location, day.isoformat())


@dataclass
class SingleMeal:
    name: str
    extras: List[str] = field(default_factory=list)
    price: str = ''

    def to_dict(self) -> Dict:
        return {'name': self.name, 'extras': list(self.extras), 'price': self.price}

    @classmethod
    def from_dict(cls, data: Dict) -> 'SingleMeal':
        return cls(name=data['name'], extras=list(data.get('extras', [])), price=data.get('price', ''))


@dataclass
class MealGroup:
    label: str
    meals: List[SingleMeal] = field(default_factory=list)

    @property
    def shared_price(self) -> Optional[str]:
        """The price every meal in this group has, or None if they differ"""
        prices = {meal.price for meal in self.meals}
        if len(prices) == 1:
            return prices.pop()
        return None

    def to_dict(self) -> Dict:
        return {'label': self.label, 'meals': [meal.to_dict() for meal in self.meals]}

    @classmethod
    def from_dict(cls, data: Dict) -> 'MealGroup':
        return cls(label=data['label'], meals=[SingleMeal.from_dict(m) for m in data['meals']])


@dataclass
class DayMenu:
    """
    Menu of one day as published by the source

    Args:
        date: Date reported by the source page (may differ from the request
            only transiently, extraction rejects mismatches)
        groups: Meal groups in the order the page presented them
    """
    date: date
    groups: List[MealGroup] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'date': self.date.isoformat(),
            'groups': [group.to_dict() for group in self.groups]
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'DayMenu':
        return cls(
            date=date.fromisoformat(data['date']),
            groups=[MealGroup.from_dict(g) for g in data['groups']]
        )


@dataclass
class CacheEntry:
    key: CacheKey
    raw: str
    structured: DayMenu


@dataclass(frozen=True)
class ResolvedDate:
    """
    Result of resolving a day offset against the calendar

    Args:
        date: Calendar date the request resolved to
        shifted_by: Days added on top of the offset to skip a weekend
        mode: The requested offset (0 = today, 1 = tomorrow, 2 = day after)
    """
    date: date
    shifted_by: int = 0
    mode: int = 0

    @property
    def is_shifted(self) -> bool:
        return self.shifted_by > 0


@dataclass
class MenuResult:
    resolved: ResolvedDate
    menu: DayMenu

    @property
    def is_shifted(self) -> bool:
        return self.resolved.is_shifted
