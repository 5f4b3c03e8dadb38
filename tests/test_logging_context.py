"""Tests for logging context propagation."""

import pytest

from jobnotify.logging.context import (
    clear_log_context,
    get_log_context,
    log_context,
    pop_log_context,
    push_log_context,
)


@pytest.fixture(autouse=True)
def clean_context():
    clear_log_context()
    yield
    clear_log_context()


def test_empty_context():
    assert get_log_context() == {}


def test_push_and_pop():
    token = push_log_context(cycle_id="abc123")
    assert get_log_context() == {"cycle_id": "abc123"}

    pop_log_context(token)
    assert get_log_context() == {}


def test_nested_context_managers():
    with log_context(cycle_id="c1"):
        with log_context(subscription_id="s1"):
            assert get_log_context() == {"cycle_id": "c1", "subscription_id": "s1"}
        assert get_log_context() == {"cycle_id": "c1"}
    assert get_log_context() == {}


def test_inner_value_overrides_outer():
    with log_context(attempt=1):
        with log_context(attempt=2):
            assert get_log_context()["attempt"] == 2
        assert get_log_context()["attempt"] == 1


def test_context_restored_after_exception():
    with pytest.raises(RuntimeError):
        with log_context(message_id="m1"):
            raise RuntimeError("boom")
    assert get_log_context() == {}


def test_get_log_context_returns_copy():
    with log_context(cycle_id="c1"):
        get_log_context()["cycle_id"] = "changed"
        assert get_log_context()["cycle_id"] == "c1"
