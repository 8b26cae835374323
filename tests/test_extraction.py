"""Tests for waypost.extraction — typed dataclass extraction from body data."""

from dataclasses import dataclass, field
from decimal import Decimal

import pytest

from waypost.extraction import convert_value, extract_dataclass, is_extractable_dataclass
from waypost.http.request import Request


@dataclass(frozen=True, slots=True)
class Address:
    city: str
    zip_code: str = ""


@dataclass(frozen=True, slots=True)
class NewOrder:
    product_id: int
    quantity: int = 1
    price: Decimal = Decimal("0")
    gift: bool = False
    address: Address | None = None
    tags: list[str] = field(default_factory=list)


class TestIsExtractableDataclass:
    def test_user_dataclass(self) -> None:
        assert is_extractable_dataclass(NewOrder)

    def test_framework_dataclass_excluded(self) -> None:
        assert not is_extractable_dataclass(Request)

    def test_instances_and_plain_types(self) -> None:
        assert not is_extractable_dataclass(Address("x"))
        assert not is_extractable_dataclass(dict)


class TestExtractDataclass:
    def test_basic(self) -> None:
        order = extract_dataclass(NewOrder, {"product_id": 5, "quantity": 2})
        assert order == NewOrder(product_id=5, quantity=2)

    def test_unknown_keys_ignored(self) -> None:
        order = extract_dataclass(NewOrder, {"product_id": 5, "unknown": True})
        assert order.product_id == 5

    def test_strings_coerced(self) -> None:
        order = extract_dataclass(
            NewOrder, {"product_id": "5", "price": "19.99", "gift": "true"}
        )
        assert order.product_id == 5
        assert order.price == Decimal("19.99")
        assert order.gift is True

    def test_nested(self) -> None:
        order = extract_dataclass(
            NewOrder, {"product_id": 1, "address": {"city": "Lyon"}, "tags": ["a", "b"]}
        )
        assert order.address == Address("Lyon")
        assert order.tags == ["a", "b"]

    def test_missing_required(self) -> None:
        with pytest.raises(ValueError, match="product_id: required field is missing"):
            extract_dataclass(NewOrder, {"quantity": 1})

    def test_nested_error_path(self) -> None:
        with pytest.raises(ValueError, match=r"address\.city"):
            extract_dataclass(NewOrder, {"product_id": 1, "address": {}})

    def test_not_an_object(self) -> None:
        with pytest.raises(ValueError, match="expected an object"):
            extract_dataclass(NewOrder, [1, 2])

    def test_bool_is_not_a_number(self) -> None:
        with pytest.raises(ValueError, match="product_id"):
            extract_dataclass(NewOrder, {"product_id": True})


class TestConvertValue:
    def test_none_passes(self) -> None:
        assert convert_value(None, int) is None

    def test_list_of_dataclasses(self) -> None:
        result = convert_value([{"city": "A"}, {"city": "B"}], list[Address])
        assert result == [Address("A"), Address("B")]

    def test_list_item_error_path(self) -> None:
        with pytest.raises(ValueError, match=r"value\[1\]"):
            convert_value(["1", "x"], list[int])

    def test_integral_float_to_int(self) -> None:
        assert convert_value(3.0, int) == 3

    def test_fractional_float_to_int(self) -> None:
        with pytest.raises(ValueError):
            convert_value(3.5, int)

    def test_decimal_from_number(self) -> None:
        assert convert_value(2.5, Decimal) == Decimal("2.5")

    def test_string_rejects_number(self) -> None:
        with pytest.raises(ValueError, match="expected a string"):
            convert_value(5, str)
