"""Tests for the transaction nesting state machine."""

import pytest

from sqlite_actor.connection import nesting
from sqlite_actor.errors import TransactionStateError


def test_begin_at_level_zero_opens_transaction():
    assert nesting.begin(0) == ("BEGIN TRANSACTION", 1)


def test_begin_inside_transaction_creates_savepoint_named_for_level():
    assert nesting.begin(1) == ("SAVEPOINT S1", 2)
    assert nesting.begin(2) == ("SAVEPOINT S2", 3)


def test_commit_top_level():
    assert nesting.commit(1) == ("COMMIT", 0)


def test_commit_nested_releases_matching_savepoint():
    assert nesting.commit(2) == ("RELEASE SAVEPOINT S1", 1)
    assert nesting.commit(3) == ("RELEASE SAVEPOINT S2", 2)


def test_rollback_top_level():
    assert nesting.rollback(1) == ("ROLLBACK", 0)


def test_rollback_nested_targets_matching_savepoint():
    assert nesting.rollback(2) == ("ROLLBACK TO SAVEPOINT S1", 1)
    assert nesting.rollback(4) == ("ROLLBACK TO SAVEPOINT S3", 3)


@pytest.mark.parametrize("depth", [1, 2, 5, 10])
def test_begin_then_commit_addresses_same_savepoint(depth):
    """The savepoint created by begin at any depth is the one the next commit releases."""
    created = nesting.begin(depth)
    released = nesting.commit(created.level)
    rolled_back = nesting.rollback(created.level)
    name = created.sql.removeprefix("SAVEPOINT ")
    assert released.sql == f"RELEASE SAVEPOINT {name}"
    assert rolled_back.sql == f"ROLLBACK TO SAVEPOINT {name}"
    assert released.level == rolled_back.level == depth


def test_commit_at_level_zero_is_an_error():
    """Decision: commit with nothing open fails loudly instead of being a no-op."""
    with pytest.raises(TransactionStateError, match="no transaction is open"):
        nesting.commit(0)


def test_rollback_at_level_zero_is_an_error():
    """Decision: rollback with nothing open fails loudly instead of being a no-op."""
    with pytest.raises(TransactionStateError, match="no transaction is open"):
        nesting.rollback(0)


def test_negative_level_rejected():
    with pytest.raises(ValueError):
        nesting.begin(-1)


def test_savepoint_name():
    assert nesting.savepoint_name(1) == "S1"
    with pytest.raises(ValueError):
        nesting.savepoint_name(0)
