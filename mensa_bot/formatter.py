"""
Telegram message formatting
Renders a menu as MarkdownV2 text from a Jinja2 template
"""

import re
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from mensa_common.models import MenuResult, ResolvedDate


TEMPLATE_DIR = Path(__file__).parent / 'templates'

WEEKDAYS = ['Montag', 'Dienstag', 'Mittwoch', 'Donnerstag', 'Freitag', 'Samstag', 'Sonntag']

RELATIVE_DAYS = {1: 'morgen', 2: 'übermorgen'}

FOOTER = " < /heute >  < /morgen >\n < /uebermorgen >"

NO_MENU_TEXT = "Für den Tag existiert noch kein Plan."

# Characters MarkdownV2 reserves outside of entities, plus '<'
_MARKDOWN_SPECIAL_RE = re.compile(r'([_*\[\]()~`<>#+\-=|{}.!\\])')


def escape_markdown(text: str) -> str:
    """Escape text for Telegram MarkdownV2"""
    return _MARKDOWN_SPECIAL_RE.sub(r'\\\1', text)


def _environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(TEMPLATE_DIR),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=False
    )
    env.filters['md'] = escape_markdown
    return env


def format_date_line(resolved: ResolvedDate) -> str:
    """
    Date heading, e.g. "Montag, 11.03.2024 (übermorgen)"

    The annotation is only added when a weekend pushed the request forward
    to tomorrow or the day after. Further shifts are left bare, the weekday
    already names the day.
    """
    day = resolved.date
    line = f"{WEEKDAYS[day.weekday()]}, {day.strftime('%d.%m.%Y')}"

    if resolved.is_shifted:
        relative = RELATIVE_DAYS.get(resolved.mode + resolved.shifted_by)
        if relative:
            line += f" ({relative})"

    return line


def build_message(result: MenuResult) -> str:
    """Render the full menu message for one day"""
    template = _environment().get_template('menu.md.j2')
    return template.render(
        date_line=format_date_line(result.resolved),
        menu=result.menu,
        footer=FOOTER
    )


def build_no_menu_message(resolved: ResolvedDate) -> str:
    """Message shown when the source has no plan for the resolved day"""
    return f"_{escape_markdown(format_date_line(resolved))}_\n\n{escape_markdown(NO_MENU_TEXT)}"
