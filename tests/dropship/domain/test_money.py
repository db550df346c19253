import pytest
from dropship.shared.money import format_cents


@pytest.mark.parametrize(
    "cents, expected",
    [
        (0, "$0.00"),
        (5, "$0.05"),
        (4500, "$45.00"),
        (123456, "$1234.56"),
        (-250, "-$2.50"),
        (None, "$0.00"),
    ],
)
def test_format_cents(cents, expected):
    assert format_cents(cents) == expected
