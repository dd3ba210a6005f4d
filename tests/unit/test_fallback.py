"""
Unit tests for ordered fallback ladders.
"""

from unittest.mock import MagicMock

import pytest

from reprogistry.utils.fallback import Attempt, first_success


class TestFirstSuccess:
    """Tests for first_success."""

    def test_first_value_wins(self):
        result = first_success([Attempt("a", lambda: None), Attempt("b", lambda: 2), Attempt("c", lambda: 3)])
        assert result.succeeded is True
        assert result.value == 2
        assert result.label == "b"
        assert result.attempted == ["a", "b"]

    def test_later_rungs_never_run(self):
        later = MagicMock(return_value="x")
        first_success([Attempt("a", lambda: "hit"), Attempt("b", later)])
        later.assert_not_called()

    def test_all_fail(self):
        result = first_success([Attempt("a", lambda: None), Attempt("b", lambda: None)])
        assert result.succeeded is False
        assert result.value is None
        assert result.attempted == ["a", "b"]

    def test_tolerated_exception_moves_on(self):
        def boom():
            raise ValueError("nope")

        result = first_success([Attempt("a", boom), Attempt("b", lambda: 1)], tolerate=(ValueError,))
        assert result.value == 1
        assert isinstance(result.first_error, ValueError)

    def test_other_exceptions_propagate(self):
        def boom():
            raise KeyError("nope")

        with pytest.raises(KeyError):
            first_success([Attempt("a", boom), Attempt("b", lambda: 1)], tolerate=(ValueError,))

    def test_falsy_values_count_as_success(self):
        """Only None means failure; 0 and empty strings are results."""
        result = first_success([Attempt("zero", lambda: 0)])
        assert result.succeeded is True
        assert result.value == 0

    def test_logs_failed_rungs(self):
        logger = MagicMock()
        first_success([Attempt("a", lambda: None), Attempt("b", lambda: 1)], logger=logger)
        logger.debug.assert_called_once()

    def test_accepts_generator(self):
        result = first_success(Attempt(str(i), lambda i=i: i if i == 2 else None) for i in range(5))
        assert result.label == "2"
