# tests/test_csv_sink.py

import pandas as pd

from src.csv_sink import CsvSink

HEADER = ["sha", "author", "is_merge"]


def test_ensure_creates_header_once(tmp_path):
    path = tmp_path / "out.csv"
    sink = CsvSink()

    assert sink.ensure(str(path), HEADER) is True
    assert sink.ensure(str(path), HEADER) is False

    assert path.read_text().splitlines() == ["sha,author,is_merge"]


def test_ensure_leaves_existing_file_alone(tmp_path):
    path = tmp_path / "out.csv"
    path.write_text("something,else\n1,2\n")

    CsvSink().ensure(str(path), HEADER)

    assert path.read_text() == "something,else\n1,2\n"


def test_append_rows_across_calls(tmp_path):
    path = tmp_path / "out.csv"
    sink = CsvSink()
    sink.ensure(str(path), HEADER)

    assert sink.append_rows(str(path), [("a1", "ann", False)]) == 1
    assert sink.append_rows(str(path), [("b1", "bob", True), ("c1", None, False)]) == 2

    df = pd.read_csv(path)
    assert list(df["sha"]) == ["a1", "b1", "c1"]
    assert list(df["is_merge"]) == [False, True, False]
    assert pd.isna(df.iloc[2]["author"])


def test_append_nothing_does_not_touch_file(tmp_path):
    path = tmp_path / "out.csv"

    assert CsvSink().append_rows(str(path), []) == 0
    assert not path.exists()


def test_text_with_commas_and_newlines_round_trips(tmp_path):
    path = tmp_path / "out.csv"
    sink = CsvSink()
    sink.ensure(str(path), ["sha", "message"])

    sink.append_rows(str(path), [("a1", "Merge #12: fix, tidy\n\nACKs for top commit")])

    assert pd.read_csv(path).iloc[0]["message"] == "Merge #12: fix, tidy\n\nACKs for top commit"


def test_integer_column_with_missing_value_stays_integer(tmp_path):
    path = tmp_path / "out.csv"
    sink = CsvSink()
    sink.ensure(str(path), ["sha", "reviewers"])

    sink.append_rows(str(path), [("a1", 0), ("b1", None), ("c1", 3)])

    assert path.read_text().splitlines() == ["sha,reviewers", "a1,0", "b1,", "c1,3"]
