"""Tests for waypost.config — AppConfig frozen dataclass."""

import dataclasses

import pytest

from waypost.config import AppConfig


class TestAppConfig:
    def test_defaults(self) -> None:
        cfg = AppConfig()

        assert cfg.debug is False
        assert cfg.strict_bool is True
        assert cfg.max_body_size == 16 * 1024 * 1024
        assert cfg.offload_sync_handlers is True
        assert cfg.not_found_message == "Endpoint does not exist"
        assert cfg.internal_error_message == "Internal server error, please try again later"

    def test_override(self) -> None:
        cfg = AppConfig(debug=True, strict_bool=False, max_body_size=1024)

        assert cfg.debug is True
        assert cfg.strict_bool is False
        assert cfg.max_body_size == 1024

    def test_frozen(self) -> None:
        cfg = AppConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            cfg.debug = True  # type: ignore[misc]
