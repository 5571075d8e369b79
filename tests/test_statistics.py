"""
Unit tests for attribute statistics and their XML/JSON forms.
Run: pytest tests/test_statistics.py
"""

import sys
from pathlib import Path
from xml.etree import ElementTree as ET

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
	sys.path.insert(0, str(ROOT))

from series_analyzer.exceptions import BadInputError, InvalidAttributeError, UnsupportedAttributeError
from series_analyzer.models import Series, Studio
from series_analyzer.statistics import (
	SUPPORTED_ATTRIBUTES,
	count_by_attribute,
	extract_keys,
	format_rating,
	statistics_to_dict,
	statistics_to_xml,
	write_statistics_xml,
)


def make(title="T", genre="Drama", seasons=1, rating=7.0, year=2020, finished=False):
	return Series(title, genre, seasons, rating, year, finished, Studio("HBO", "USA"))


def test_genre_split_and_tie_order():
	series = [make(genre="Drama, Sci-Fi"), make(genre="Drama"), make(genre="Sci-Fi, Horror")]
	table = count_by_attribute(series, "genre")
	assert table == [("Drama", 2), ("Sci-Fi", 2), ("Horror", 1)]


def test_genre_counts_can_exceed_record_count():
	series = [make(genre="A, B, C"), make(genre="A")]
	table = count_by_attribute(series, "genre")
	assert sum(count for _, count in table) == 4


def test_blank_genre_parts_become_unknown():
	assert extract_keys(make(genre=" , ,"), "genre") == ["unknown"]
	assert extract_keys(make(genre=""), "genre") == ["unknown"]
	assert extract_keys(make(genre=" Crime ,, Drama "), "genre") == ["Crime", "Drama"]


def test_rating_keys_round_half_up():
	series = [make(rating=8.74), make(rating=8.75), make(rating=9.20)]
	keys = [k for s in series for k in extract_keys(s, "rating")]
	assert keys == ["8.7", "8.8", "9.2"]


@pytest.mark.parametrize("value,expected", [(0, "0.0"), (10, "10.0"), (7.05, "7.1"), (2.25, "2.3"), (9.949, "9.9")])
def test_format_rating(value, expected):
	assert format_rating(value) == expected


def test_non_finite_ratings_get_their_own_keys():
	series = [make(rating=float("inf")), make(rating=float("-inf")), make(rating=float("nan")), make(rating=float("inf"))]
	table = count_by_attribute(series, "rating")
	assert table == [("Infinity", 2), ("-Infinity", 1), ("NaN", 1)]


def test_scalar_attribute_keys():
	s = make(title="  Dark ", seasons=3, year=2017, finished=True)
	assert extract_keys(s, "title") == ["Dark"]
	assert extract_keys(s, "seasons") == ["3"]
	assert extract_keys(s, "year") == ["2017"]
	assert extract_keys(s, "finished") == ["true"]
	assert extract_keys(make(title="   "), "title") == ["unknown"]
	assert extract_keys(make(finished=False), "finished") == ["false"]


def test_order_is_count_desc_then_case_insensitive_key():
	series = [make(title=t) for t in ["beta", "Alpha", "gamma", "Gamma", "gamma", "alpha", "Alpha"]]
	table = count_by_attribute(series, "title")
	assert table == [("Alpha", 2), ("gamma", 2), ("alpha", 1), ("beta", 1), ("Gamma", 1)]


def test_attribute_name_is_trimmed_and_case_insensitive():
	series = [make(year=2001), make(year=2001), make(year=1999)]
	assert count_by_attribute(series, "  YEAR ") == [("2001", 2), ("1999", 1)]


def test_unsupported_attribute():
	with pytest.raises(UnsupportedAttributeError) as info:
		count_by_attribute([make()], "unknown")
	assert info.value.attribute == "unknown"
	assert info.value.supported == SUPPORTED_ATTRIBUTES
	assert "title, genre, seasons, rating, year, finished" in str(info.value)


@pytest.mark.parametrize("attribute", ["", "   ", None])
def test_blank_attribute(attribute):
	with pytest.raises(InvalidAttributeError):
		count_by_attribute([make()], attribute)


def test_attribute_errors_are_bad_input():
	assert issubclass(InvalidAttributeError, BadInputError)
	assert issubclass(UnsupportedAttributeError, BadInputError)
	assert not issubclass(InvalidAttributeError, UnsupportedAttributeError)


def test_none_series_yields_empty_table():
	assert count_by_attribute(None, "title") == []
	assert count_by_attribute([], "genre") == []


def test_none_entries_are_skipped():
	assert count_by_attribute([None, make(seasons=2)], "seasons") == [("2", 1)]


def test_same_input_same_table():
	series = [make(genre=g) for g in ["Drama, Crime", "crime", "Comedy", "Drama", "comedy"]]
	assert count_by_attribute(series, "genre") == count_by_attribute(list(series), "genre")


def test_statistics_to_dict():
	assert statistics_to_dict([("Drama", 2), ("Horror", 1)], "genre") == {
		"by": "genre",
		"items": [{"value": "Drama", "count": 2}, {"value": "Horror", "count": 1}],
	}


def test_statistics_xml_shape(tmp_path):
	table = [("Drama", 2), ("Sci-Fi & Fantasy", 1)]
	root = ET.fromstring(statistics_to_xml(table, "genre"))
	assert root.tag == "statistics"
	assert root.get("by") == "genre"
	items = [(i.findtext("value"), i.findtext("count")) for i in root.findall("item")]
	assert items == [("Drama", "2"), ("Sci-Fi & Fantasy", "1")]

	out = write_statistics_xml(table, "genre", tmp_path / "statistics_by_genre.xml")
	assert ET.parse(out).getroot().get("by") == "genre"
