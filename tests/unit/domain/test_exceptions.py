"""Tests for the error taxonomy and classification."""

import pytest

from novelsync.domain.exceptions import (
    AppError,
    EntityNotFoundError,
    NetworkError,
    ParseError,
    PluginError,
    classify_error,
    get_error_message,
)


class TestGetErrorMessage:
    def test_app_error_uses_message_attribute(self):
        assert get_error_message(PluginError("boom", plugin_id="rr")) == "boom"

    def test_plain_exception_uses_str(self):
        assert get_error_message(ValueError("bad value")) == "bad value"

    def test_non_exception_value(self):
        assert get_error_message(42) == "42"


class TestClassifyError:
    @pytest.mark.parametrize(
        "message",
        [
            "Network request failed",
            "timeout of 5000ms exceeded",
            "Failed to FETCH",
            "connect ECONNREFUSED 127.0.0.1:443",
            "getaddrinfo ENOTFOUND example.com",
            "Unable to resolve host",
        ],
    )
    def test_network_markers(self, message: str):
        error = classify_error(RuntimeError(message))
        assert isinstance(error, NetworkError)
        assert error.message == message

    @pytest.mark.parametrize(
        "message",
        ["Could not parse chapter list", "Unexpected token < in JSON", "Invalid HTML"],
    )
    def test_parse_markers(self, message: str):
        assert isinstance(classify_error(RuntimeError(message)), ParseError)

    def test_network_wins_over_parse(self):
        """'fetch' and 'json' both match; connectivity is the better explanation."""
        assert isinstance(classify_error(RuntimeError("failed to fetch json")), NetworkError)

    def test_unmatched_with_plugin_id_is_plugin_error(self):
        error = classify_error(RuntimeError("Novel is gone"), plugin_id="royalroad")
        assert isinstance(error, PluginError)
        assert error.plugin_id == "royalroad"
        assert str(error) == "[royalroad] Novel is gone"

    def test_unmatched_without_plugin_id_is_app_error(self):
        error = classify_error(RuntimeError("something odd"))
        assert type(error) is AppError
        assert error.message == "something odd"

    def test_app_errors_pass_through_unchanged(self):
        original = ParseError("network looking text but already classified")
        assert classify_error(original, plugin_id="x") is original

    def test_classifies_plain_strings(self):
        assert isinstance(classify_error("timeout"), NetworkError)


def test_entity_not_found_message():
    error = EntityNotFoundError("Novel", 7)
    assert error.message == "Novel with id 7 not found"
    assert error.entity_type == "Novel"
    assert error.entity_id == 7
