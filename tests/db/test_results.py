"""Tests for result shaping."""

import pytest

from sqlite_actor.db.results import Step, shape_row, shape_rows


def test_shape_many_rows():
    rows = [("mary", 22), ("alex", 28)]
    assert shape_rows(("name", "age"), rows) == [
        {"name": "mary", "age": 22},
        {"name": "alex", "age": 28},
    ]


def test_shape_zero_rows():
    assert shape_rows(("name", "age"), []) == []


def test_bare_tuple_is_one_row():
    """A single row not wrapped in a list is shaped as a one-row result."""
    assert shape_rows(("name", "age"), ("mary", 22)) == [{"name": "mary", "age": 22}]


def test_tuple_of_rows_is_many_rows():
    rows = (("mary", 22), ("alex", 28))
    assert len(shape_rows(("name", "age"), rows)) == 2


def test_shape_preserves_column_order():
    row = shape_rows(["c", "a", "b"], [(3, 1, 2)])[0]
    assert list(row) == ["c", "a", "b"]


def test_shape_keeps_none_and_blobs():
    row = shape_rows(("face_image", "height"), [(b"\x00\x01", None)])[0]
    assert row == {"face_image": b"\x00\x01", "height": None}


def test_shape_row_returns_single_mapping():
    assert shape_row(("age",), (33,)) == {"age": 33}


def test_shape_row_and_shape_rows_agree():
    columns = ("name", "age", "height", "face_image")
    row = ("bob", 33, 1.75, None)
    assert shape_row(columns, row) == shape_rows(columns, [row])[0]


def test_row_width_mismatch_rejected():
    with pytest.raises(ValueError, match="2 values for 3 columns"):
        shape_rows(("a", "b", "c"), [(1, 2)])


def test_step_sentinels_are_distinct():
    assert Step.DONE is not Step.BUSY
    assert repr(Step.DONE) == "Step.DONE"
