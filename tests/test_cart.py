import pytest

from app.errors import ValidationError
from app.services.cart import CartLine, billable_lines, build_cart, product_ids


class Product:

    def __init__(self, id, name, base_price, addon_name=None, addon_price=0.0):
        self.id = id
        self.name = name
        self.base_price = base_price
        self.addon_name = addon_name
        self.addon_price = addon_price


PRODUCTS = {
    1: Product(1, 'White Folding Chair', 1.88),
    2: Product(2, 'Folding Table', 10.0, 'Tablecloth', 5.0),
}


def test_build_cart_copies_catalog_prices():
    lines = build_cart([{'product_id': 2, 'quantity': 3, 'addon_selected': True}], PRODUCTS)
    assert len(lines) == 1
    assert lines[0].product_name == 'Folding Table'
    assert lines[0].unit_price == 15.0
    assert lines[0].line_total(2) == 90.0


def test_addon_cannot_be_selected_without_one():
    lines = build_cart([{'product_id': 1, 'quantity': 1, 'addon_selected': True}], PRODUCTS)
    assert lines[0].addon_selected is False
    assert lines[0].unit_price == 1.88


def test_unknown_product_and_bad_quantity_are_reported_per_item():
    with pytest.raises(ValidationError) as excinfo:
        build_cart([{'product_id': 99, 'quantity': 1}, {'product_id': 1, 'quantity': 'many'},
                    {'product_id': 2, 'quantity': -1}], PRODUCTS)
    assert set(excinfo.value.errors) == {'items[0].product_id', 'items[1].quantity', 'items[2].quantity'}


def test_negative_price_rejected():
    with pytest.raises(ValidationError):
        CartLine(1, 'Broken', -1, 1)


def test_snapshot_keeps_price_after_catalog_change():
    line = build_cart([{'product_id': 2, 'quantity': 1, 'addon_selected': True}], PRODUCTS)[0]
    snapshot = line.to_dict()
    PRODUCTS[2].base_price = 99.0
    try:
        assert CartLine.from_dict(snapshot).unit_price == 15.0
    finally:
        PRODUCTS[2].base_price = 10.0


def test_billable_lines_drop_zero_quantities():
    lines = [CartLine(1, 'a', 1, 0), CartLine(2, 'b', 1, 2)]
    assert [line.product_id for line in billable_lines(lines)] == [2]


def test_string_product_ids_are_accepted():
    lines = build_cart([{'product_id': '2', 'quantity': '1'}], PRODUCTS)
    assert lines[0].product_name == 'Folding Table'
    assert product_ids([{'product_id': '2'}, {'product_id': 'x'}, {}]) == [2]
