"""
Tests for mensa_common.parser module
"""

import pytest
from datetime import date
from bs4 import BeautifulSoup
from mensa_common.models import NoMenuPublished, StructuralExtractionFault
from mensa_common.parser import (
    parse_menu,
    parse_echo_date,
    find_dish_block,
    clean_text,
    last_line
)


def _page(body: str, echo: str = "Dienstag, 05.03.2024") -> str:
    return f"""
    <select id="edit-date"><option selected="selected">{echo}</option></select>
    <section class="meals">{body}</section>
    """


def _dish(name: str, price: str = "2,50 €") -> str:
    return f"""
    <section><header><div><div><h4>{name}</h4><p>Preis
    {price}</p></div></div></header></section>
    """


class TestParseMenu:
    """Tests for parsing a full menu page"""

    def test_two_groups_extracted(self, menu_html):
        """Test that both groups come out with labels, dishes, extras and prices"""
        menu = parse_menu(menu_html, "2024-03-05")

        assert menu.date == date(2024, 3, 5)
        assert [g.label for g in menu.groups] == ["Vegetarisches Gericht", "Pasta & Co"]

        veggie, pasta = menu.groups
        assert [m.name for m in veggie.meals] == ["Gemüsecurry mit Reis", "Linsensuppe"]
        assert veggie.meals[0].extras == ["Basmatireis", "Mango-Chutney"]
        assert veggie.meals[0].price == "2,50 € / 4,20 € / 5,50 €"
        assert veggie.meals[1].extras == []
        assert veggie.meals[1].price == "1,20 € / 2,10 € / 2,80 €"

        assert len(pasta.meals) == 1
        assert pasta.meals[0].name == "Spaghetti Bolognese"
        assert pasta.meals[0].extras == ["Parmesan"]
        assert pasta.meals[0].price == "3,10 € / 4,80 € / 6,20 €"

    def test_deterministic(self, menu_html):
        """Test that identical HTML gives identical output"""
        first = parse_menu(menu_html, "2024-03-05")
        second = parse_menu(menu_html, "2024-03-05")

        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_substituted_date_is_no_menu(self, menu_html):
        """Test that a page for another day raises NoMenuPublished"""
        with pytest.raises(NoMenuPublished) as exc_info:
            parse_menu(menu_html, "2024-03-06")

        assert exc_info.value.requested == "2024-03-06"
        assert exc_info.value.published == "2024-03-05"

    def test_missing_dish_block_is_fault(self, missing_block_html):
        """Test that a title without a following dish block is a structural fault"""
        with pytest.raises(StructuralExtractionFault):
            parse_menu(missing_block_html, "2024-03-05")

    def test_missing_container_is_fault(self):
        """Test that a page without the meals section is a structural fault"""
        html = '<select id="edit-date"><option selected>Dienstag, 05.03.2024</option></select>'

        with pytest.raises(StructuralExtractionFault):
            parse_menu(html, "2024-03-05")

    def test_empty_dish_block_is_fault(self):
        """Test that a group without dishes is rejected"""
        html = _page('<h3 class="title-prim">Leer</h3><div class="accordion u-block"></div>')

        with pytest.raises(StructuralExtractionFault):
            parse_menu(html, "2024-03-05")

    def test_dish_without_name_is_fault(self):
        """Test that a dish without its name heading is rejected"""
        html = _page('<h3 class="title-prim">A</h3><div class="accordion u-block"><section></section></div>')

        with pytest.raises(StructuralExtractionFault):
            parse_menu(html, "2024-03-05")

    def test_container_without_titles_gives_empty_menu(self):
        """Test that a meals section with no titles yields no groups"""
        menu = parse_menu(_page('<p>Heute geschlossen</p>'), "2024-03-05")

        assert menu.groups == []

    def test_group_order_preserved(self):
        """Test that groups keep the order of the page"""
        body = ''.join(
            f'<h3 class="title-prim">{label}</h3><div class="accordion u-block">{_dish(label + " dish")}</div>'
            for label in ["Zeta", "Alpha", "Mu"]
        )

        menu = parse_menu(_page(body), "2024-03-05")

        assert [g.label for g in menu.groups] == ["Zeta", "Alpha", "Mu"]


class TestEchoDate:
    """Tests for reading the date-echo control"""

    def test_reads_selected_option(self, menu_html):
        """Test that the selected option, not the first one, is used"""
        soup = BeautifulSoup(menu_html, 'html.parser')

        assert parse_echo_date(soup) == date(2024, 3, 5)

    def test_missing_control_is_fault(self):
        """Test that a page without the date control is a structural fault"""
        soup = BeautifulSoup('<section class="meals"></section>', 'html.parser')

        with pytest.raises(StructuralExtractionFault):
            parse_echo_date(soup)

    def test_unreadable_date_is_fault(self):
        """Test that garbage in the date control is a structural fault"""
        soup = BeautifulSoup('<select id="edit-date"><option selected>heute</option></select>', 'html.parser')

        with pytest.raises(StructuralExtractionFault):
            parse_echo_date(soup)


class TestFindDishBlock:
    """Tests for the bounded sibling lookahead"""

    def test_skips_decoration(self):
        """Test that intervening elements are skipped"""
        soup = BeautifulSoup(
            '<div><h3 class="title-prim">A</h3><hr/><h4>sub</h4><div class="accordion u-block" id="x"></div></div>',
            'html.parser'
        )

        block = find_dish_block(soup.find('h3'))

        assert block is not None
        assert block['id'] == 'x'

    def test_requires_both_marker_classes(self):
        """Test that an accordion without u-block is not a dish block"""
        soup = BeautifulSoup(
            '<div><h3 class="title-prim">A</h3><div class="accordion"></div></div>',
            'html.parser'
        )

        assert find_dish_block(soup.find('h3')) is None

    def test_stops_at_next_title(self):
        """Test that the next section's block is not claimed"""
        soup = BeautifulSoup(
            '<div><h3 class="title-prim">A</h3><h3 class="title-prim">B</h3>'
            '<div class="accordion u-block"></div></div>',
            'html.parser'
        )

        assert find_dish_block(soup.find('h3')) is None

    def test_limit_reached(self):
        """Test that the search gives up after the lookahead limit"""
        soup = BeautifulSoup(
            '<div><h3 class="title-prim">A</h3>' + '<span></span>' * 5 +
            '<div class="accordion u-block"></div></div>',
            'html.parser'
        )

        assert find_dish_block(soup.find('h3'), limit=3) is None
        assert find_dish_block(soup.find('h3'), limit=10) is not None


class TestTextHelpers:
    """Tests for text normalisation"""

    def test_last_line_skips_trailing_blank(self):
        """Test that the price is the last non-empty line, trimmed"""
        assert last_line("\n  Studierende\n   2,50 €  \n\n") == "2,50 €"

    def test_last_line_single_line(self):
        assert last_line("2,50 €") == "2,50 €"

    def test_last_line_empty(self):
        assert last_line("  \n ") == ""

    def test_clean_text(self):
        assert clean_text("  Pasta\n   &  Co ") == "Pasta & Co"
