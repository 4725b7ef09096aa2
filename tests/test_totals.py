from decimal import Decimal

import pytest

from restaurant.services.totals import TAX_RATE, calculate_order_totals, line_total


def _line(price, quantity):
    return {"unit_price": price, "quantity": quantity}


def test_two_of_one_item():
    totals = calculate_order_totals([_line(Decimal("12.99"), 2)])
    assert totals.subtotal == Decimal("25.98")
    assert totals.tax == Decimal("2.08")
    assert totals.total == Decimal("28.06")


def test_empty_order_is_all_zero():
    totals = calculate_order_totals([])
    assert (totals.subtotal, totals.tax, totals.total) == (0, 0, 0)


def test_rounds_at_the_final_step_only():
    totals = calculate_order_totals([_line(Decimal("0.0049"), 1)])
    assert totals.subtotal == Decimal("0.00")
    assert totals.tax == Decimal("0.00")
    # 0.0049 + 0.000392 rounds up even though both parts round down
    assert totals.total == Decimal("0.01")


def test_total_follows_unrounded_figures():
    items = [_line(Decimal("7.49"), 3), _line(Decimal("2.50"), 1), _line(Decimal("5.99"), 7)]
    totals = calculate_order_totals(items)
    raw = Decimal("7.49") * 3 + Decimal("2.50") + Decimal("5.99") * 7
    assert totals.tax == (raw * TAX_RATE).quantize(Decimal("0.01"))
    assert totals.total == (raw + raw * TAX_RATE).quantize(Decimal("0.01"))


def test_rounds_half_up():
    # 1.0625 * 0.08 = 0.085 exactly
    totals = calculate_order_totals([_line(Decimal("1.0625"), 1)])
    assert totals.subtotal == Decimal("1.06")
    assert totals.tax == Decimal("0.09")
    assert totals.total == Decimal("1.15")


@pytest.mark.parametrize(
    "bad",
    [
        _line("not a number", 2),
        _line("12.99", 2),
        _line(Decimal("3.00"), "2"),
        _line(Decimal("3.00"), None),
        _line(float("nan"), 1),
        {"quantity": 4},
    ],
)
def test_unusable_lines_count_as_zero(bad):
    totals = calculate_order_totals([bad, _line(Decimal("10.00"), 1)])
    assert totals.subtotal == Decimal("10.00")
    assert totals.total == Decimal("10.80")


def test_reads_attributes():
    class Line:
        unit_price = Decimal("12.99")
        quantity = 2

    assert calculate_order_totals([Line()]).total == Decimal("28.06")


def test_line_total():
    assert line_total(Decimal("12.99"), 2) == Decimal("25.98")
    assert line_total(Decimal("12.99"), 2, Decimal("0.5")) == Decimal("12.99")
