from __future__ import annotations

import pytest

from cinerecon.domain.model import CastDetail, CastName
from cinerecon.domain.reconciliation import DEFAULT_NORMALIZER, equals, normalize, normalize_year
from cinerecon.domain.reconciliation.normalize import fold_text, normalize_title


@pytest.mark.parametrize(
    ("left", "right"),
    [
        ("S. S. Rajamouli", "SS Rajamouli"),
        ("S.S. Rajamouli", "ss rajamouli"),
        ("Ilayaraja", "Ilaiyaraaja"),
        ("Dr. Rajkumar", "Rajkumar"),
        ("Nandamuri Taraka Rama Rao Jr.", "Nandamuri Taraka Rama Rao"),
        ("Mohanlal (actor)", "Mohanlal"),
        ("Zoë", "Zoe"),
        ("M. M. Keeravaani", "M.M. Keeravani"),
    ],
)
def test_spelling_variants_normalize_equal(left: str, right: str) -> None:
    assert equals(left, right)


def test_distinct_names_stay_distinct() -> None:
    assert not equals("Prabhas", "Rana Daggubati")


def test_normalize_handles_every_value_type() -> None:
    assert normalize(None) == ""
    assert normalize(159) == "159"
    assert normalize(CastName("Prabhas")) == "prabhas"
    assert normalize(CastDetail(name="Anushka Shetty", role="Devasena")) == "anushka shetty"
    assert normalize((CastName("Prabhas"), CastName("Rana"))) == "prabhas rana"


def test_fold_text_joins_apostrophes_and_separates_punctuation() -> None:
    assert fold_text("O'Brien") == "obrien"
    assert fold_text("Rajinikanth/Kamal") == "rajinikanth kamal"


def test_extra_aliases_are_normalized_before_use() -> None:
    normalizer = DEFAULT_NORMALIZER.with_aliases({"Mani Sharma": "Manisharma"})

    assert normalizer.equals("MANI SHARMA", "manisharma")
    assert not DEFAULT_NORMALIZER.equals("Mani Sharma", "Manisharma")


def test_normalize_title_drops_leading_article() -> None:
    assert normalize_title("The Ghazi Attack") == "ghazi attack"
    assert normalize_title("A") == "a"
    assert normalize_title(None) == ""


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2015-07-10", 2015),
        ("10 July 2015", 2015),
        (1999, 1999),
        (42, None),
        ("unknown", None),
        (None, None),
        (True, None),
    ],
)
def test_normalize_year(value: object, expected: int | None) -> None:
    assert normalize_year(value) == expected
