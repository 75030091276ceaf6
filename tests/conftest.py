"""
Shared fixtures for the test suite
"""

from pathlib import Path

import pytest


FIXTURE_DIR = Path(__file__).parent / 'fixtures'


def load_fixture(name: str) -> str:
    with open(FIXTURE_DIR / name, 'r', encoding='utf-8', newline='') as f:
        return f.read()


@pytest.fixture
def menu_html() -> str:
    """Menu page that reports 2024-03-05 with two meal groups"""
    return load_fixture('speiseplan_2024-03-05.html')


@pytest.fixture
def missing_block_html() -> str:
    """Menu page whose only group has no dish block"""
    return load_fixture('speiseplan_missing_block.html')
