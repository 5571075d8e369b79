"""
Unit tests for the record parser and the parallel folder loader.
Run: pytest tests/test_data_loader.py
"""

import json
import sys
import threading
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
	sys.path.insert(0, str(ROOT))

from series_analyzer.data_loader import SeriesLoader, parse_series_bytes
from series_analyzer.exceptions import BadInputError, InternalError, LoadError, ParseError
from series_analyzer.models import Series, Studio


def write_series(folder: Path, name: str, title: str, **extra) -> Path:
	doc = {"title": title, "genre": "Drama", "seasons": 1, "rating": 7.5, "year": 2020, "finished": False,
		"studio": {"name": "HBO", "country": "USA"}}
	doc.update(extra)
	path = folder / name
	path.write_text(json.dumps(doc), encoding="utf-8")
	return path


# --- RecordParser ---

def test_parse_single_object():
	raw = b'{"title": "Dark", "genre": "Sci-Fi", "seasons": 3, "rating": 8.7, "year": 2017, "finished": true, "studio": {"name": "Netflix", "country": "DE"}}'
	series = parse_series_bytes(raw, "dark.json")
	assert series == [Series("Dark", "Sci-Fi", 3, 8.7, 2017, True, Studio("Netflix", "DE"))]


def test_parse_array_with_leading_whitespace():
	raw = b'  \n [{"title": "A"}, {"title": "B"}]'
	series = parse_series_bytes(raw, "list.json")
	assert [s.title for s in series] == ["A", "B"]


def test_missing_fields_take_zero_values():
	series = parse_series_bytes(b'{"title": null}', "sparse.json")
	assert series == [Series(title="", genre="", seasons=0, rating=0.0, year=0, finished=False, studio=None)]


def test_empty_array_yields_no_records():
	assert parse_series_bytes(b"[]", "empty.json") == []


def test_malformed_json_names_the_source():
	with pytest.raises(ParseError) as info:
		parse_series_bytes(b'{"title": "Broken"', "broken.json")
	assert info.value.source == "broken.json"
	assert "broken.json" in str(info.value)


def test_wrong_field_type_is_a_parse_error():
	with pytest.raises(ParseError):
		parse_series_bytes(b'{"seasons": "many"}', "typed.json")


@pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
def test_non_standard_constants_are_parse_errors(constant):
	raw = ('{"title": "X", "rating": %s, "studio": {"name": "HBO"}}' % constant).encode("utf-8")
	with pytest.raises(ParseError) as info:
		parse_series_bytes(raw, "nan.json")
	assert info.value.source == "nan.json"


@pytest.mark.parametrize("rating", ['1e400', '"NaN"', '"-inf"'])
def test_non_finite_ratings_are_parse_errors(rating):
	raw = ('{"title": "X", "rating": %s}' % rating).encode("utf-8")
	with pytest.raises(ParseError):
		parse_series_bytes(raw, "huge.json")


def test_overflowing_rating_fails_the_folder_load(tmp_path):
	write_series(tmp_path, "a.json", title="A")
	(tmp_path / "b.json").write_text('{"title": "X", "rating": 1e400, "studio": {"name": "HBO"}}', encoding="utf-8")
	with pytest.raises(LoadError) as info:
		SeriesLoader().load_from_folder(tmp_path)
	assert info.value.parse_error.source.endswith("b.json")


def test_non_object_array_element_is_a_parse_error():
	with pytest.raises(ParseError):
		parse_series_bytes(b'[{"title": "ok"}, 42]', "mixed.json")


def test_byte_order_mark_is_tolerated():
	series = parse_series_bytes('\ufeff{"title": "BOM"}'.encode("utf-8"), "bom.json")
	assert series[0].title == "BOM"


# --- FolderLoader ---

@pytest.mark.parametrize("workers", [1, 8])
def test_folder_load_keeps_lexical_order(tmp_path, workers):
	names = [f"{i:02d}.json" for i in range(20)]
	for i, name in enumerate(reversed(names)):  # create out of order
		write_series(tmp_path, name, title=name.replace(".json", ""))
	series = SeriesLoader().load_from_folder(tmp_path, workers=workers)
	assert [s.title for s in series] == [f"{i:02d}" for i in range(20)]


def test_same_result_for_one_and_many_workers(tmp_path):
	for i in range(12):
		write_series(tmp_path, f"s{i:02d}.json", title=f"Show {i}", seasons=i)
	loader = SeriesLoader()
	assert loader.load_from_folder(tmp_path, workers=1) == loader.load_from_folder(tmp_path, workers=8)


def test_array_files_are_flattened_in_file_order(tmp_path):
	(tmp_path / "a.json").write_text('[{"title": "A1"}, {"title": "A2"}]', encoding="utf-8")
	(tmp_path / "b.json").write_text('{"title": "B1"}', encoding="utf-8")
	series = SeriesLoader(workers=2).load_from_folder(tmp_path)
	assert [s.title for s in series] == ["A1", "A2", "B1"]


def test_only_json_suffix_at_top_level(tmp_path):
	write_series(tmp_path, "keep.json", title="keep")
	write_series(tmp_path, "upper.JSON", title="upper")
	write_series(tmp_path, "notes.txt", title="txt")
	write_series(tmp_path, "keep.json.bak", title="bak")
	nested = tmp_path / "nested"
	nested.mkdir()
	write_series(nested, "deep.json", title="deep")
	series = SeriesLoader().load_from_folder(tmp_path)
	assert [s.title for s in series] == ["keep"]


def test_empty_folder_yields_empty_list(tmp_path):
	assert SeriesLoader().load_from_folder(tmp_path) == []
	(tmp_path / "readme.md").write_text("no json here", encoding="utf-8")
	assert SeriesLoader().load_from_folder(tmp_path) == []


def test_one_malformed_file_fails_the_whole_load(tmp_path):
	for i in range(5):
		write_series(tmp_path, f"{i}.json", title=str(i))
	(tmp_path / "3b.json").write_text("{not json", encoding="utf-8")
	with pytest.raises(LoadError) as info:
		SeriesLoader(workers=4).load_from_folder(tmp_path)
	assert isinstance(info.value.parse_error, ParseError)
	assert info.value.parse_error.source.endswith("3b.json")
	assert isinstance(info.value.__cause__, ParseError)
	# a broken data folder is our failure; only the wrapped ParseError is bad input
	assert isinstance(info.value, InternalError) and not isinstance(info.value, BadInputError)
	assert isinstance(info.value.parse_error, BadInputError)


def test_first_failure_in_submission_order_is_reported(tmp_path):
	(tmp_path / "a.json").write_text("[", encoding="utf-8")
	(tmp_path / "b.json").write_text("{", encoding="utf-8")
	with pytest.raises(LoadError) as info:
		SeriesLoader(workers=2).load_from_folder(tmp_path)
	assert info.value.parse_error.source.endswith("a.json")


def test_missing_folder_is_a_load_error(tmp_path):
	with pytest.raises(LoadError):
		SeriesLoader().load_from_folder(tmp_path / "does-not-exist")


def test_worker_threads_are_released(tmp_path):
	for i in range(6):
		write_series(tmp_path, f"{i}.json", title=str(i))
	(tmp_path / "bad.json").write_text("nope", encoding="utf-8")
	with pytest.raises(LoadError):
		SeriesLoader(workers=3).load_from_folder(tmp_path)
	alive = [t for t in threading.enumerate() if t.name.startswith("series-loader")]
	assert alive == []


def test_invalid_worker_count_is_rejected(tmp_path):
	with pytest.raises(ValueError):
		SeriesLoader(workers=0)
	with pytest.raises(ValueError):
		SeriesLoader().load_from_folder(tmp_path, workers=0)


def test_load_all_reads_files_sequentially(tmp_path):
	a = write_series(tmp_path, "a.json", title="A")
	b = write_series(tmp_path, "b.json", title="B")
	assert [s.title for s in SeriesLoader().load_all([b, a])] == ["B", "A"]


def test_bundled_data_folder_loads():
	series = SeriesLoader().load_from_folder(ROOT / "data")
	assert len(series) == 5
	assert all(s.studio is not None for s in series)
