from __future__ import annotations

import pytest

from docflow.curriculum.normalize import (
    coerce_limit,
    decode_json_list,
    normalize_decimal,
    sanitize_modules,
    sanitize_string_list,
    strip_ticks,
)
from docflow.db.models import Course


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("10,5", "10.50"),
        ("10.5", "10.50"),
        (" 1500,00 ", "1500.00"),
        (7, "7.00"),
        (2.005, "2.01"),
        ("abc", None),
        ("", None),
        (None, None),
        (True, None),
    ],
)
def test_normalize_decimal_accepts_comma_and_dot(raw, expected) -> None:
    assert normalize_decimal(raw) == expected


@pytest.mark.parametrize("raw", ["10,5", "0", "45000", "1.999", 12])
def test_normalize_decimal_is_idempotent(raw) -> None:
    once = normalize_decimal(raw)
    assert normalize_decimal(once) == once


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("12345678901234567890123456789", "12345678901234567890123456789.00"),
        ("12345678901234567890123456789,555", "12345678901234567890123456789.56"),
        (1e30, "1" + "0" * 30 + ".00"),
    ],
)
def test_normalize_decimal_handles_long_numbers(raw, expected) -> None:
    assert normalize_decimal(raw) == expected
    assert normalize_decimal(expected) == expected


def test_course_accepts_long_money_values() -> None:
    course = Course(name="Piloto", total_value="12345678901234567890123456789")

    assert course.total_value == "12345678901234567890123456789.00"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("10", 10), (" 3 ", 3), ("-4", 0), ("x", 0), (None, 0), (7.9, 7)],
)
def test_coerce_limit(raw, expected) -> None:
    assert coerce_limit(raw) == expected


def test_strip_ticks_removes_pasted_quotes() -> None:
    assert strip_ticks(" `Piloto` ") == "Piloto"
    assert strip_ticks("'\"Teórico\"'") == "Teórico"
    assert strip_ticks(None) is None


def test_decode_json_list() -> None:
    assert decode_json_list([1, 2]) == [1, 2]
    assert decode_json_list('["a", "b"]') == ["a", "b"]
    assert decode_json_list('{"a": 1}') is None
    assert decode_json_list("not json") is None
    assert decode_json_list("") is None


def test_sanitize_modules_cleans_entries() -> None:
    raw = '[{"etapa": "`etapa1`", "limite": "10", "aviao": "[\\"C152\\"]"}, "junk", {"etapa": "etapa2"}]'

    modules = sanitize_modules(raw)

    assert modules == [
        {"etapa": "etapa1", "limite": 10, "aviao": ["C152"]},
        {"etapa": "etapa2", "limite": 0},
    ]
    assert sanitize_modules(modules) == modules


def test_sanitize_string_list_strips_elements() -> None:
    assert sanitize_string_list('["`C152`", " PA-34 ", 3]') == ["C152", "PA-34", 3]
    assert sanitize_string_list("C152") is None


def test_course_normalizes_on_write() -> None:
    course = Course(
        name="`Piloto Privado`",
        total_value="12000,00",
        installment_value="1000",
        installments="12",
        modules=[{"etapa": "etapa1", "limite": "10"}],
    )

    assert course.name == "Piloto Privado"
    assert course.total_value == "12000.00"
    assert course.installment_value == "1000.00"
    assert course.installments == 12
    assert course.modules == [{"etapa": "etapa1", "limite": 10}]

    # Re-assigning normalized values changes nothing
    course.total_value = course.total_value
    course.modules = course.modules
    assert course.total_value == "12000.00"
    assert course.modules == [{"etapa": "etapa1", "limite": 10}]
