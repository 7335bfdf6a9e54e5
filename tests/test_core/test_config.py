"""Tests for core.config: defaults and validation."""

from __future__ import annotations

import json

import pytest

from storefront.core.config import (
    DEFAULT_REMOTE_TIMEOUT,
    default_config,
    get_remote_timeout,
    is_placeholder,
    load_config,
    serialize_config,
    validate_guest_data_policy,
)
from storefront.core.ids import validate_id


class TestDefaultConfig:
    def test_shape(self):
        config = default_config()
        assert config["schema_version"] == 1
        assert config["guest_data_policy"] == "replace"
        assert config["remote"] == {"url": "", "key": "", "timeout_seconds": DEFAULT_REMOTE_TIMEOUT}
        assert validate_id(config["device_id"], "device")

    def test_serialize_is_canonical(self):
        config = default_config()
        text = serialize_config(config)
        assert text.endswith("\n")
        assert text == json.dumps(config, sort_keys=True, indent=2) + "\n"
        assert load_config(text) == config


class TestPlaceholders:
    @pytest.mark.parametrize(
        "value",
        [
            None,
            "",
            "   ",
            "your_supabase_project_url",
            "your_supabase_anon_key",
            "https://placeholder.supabase.co",
            "placeholder-key",
        ],
    )
    def test_placeholder(self, value):
        assert is_placeholder(value)

    def test_real_value(self):
        assert not is_placeholder("https://abc.supabase.co")


class TestHelpers:
    def test_guest_policy(self):
        assert validate_guest_data_policy("replace")
        assert validate_guest_data_policy("merge")
        assert not validate_guest_data_policy("keep")

    def test_timeout(self):
        assert get_remote_timeout({}) == DEFAULT_REMOTE_TIMEOUT
        assert get_remote_timeout({"remote": {"timeout_seconds": 3}}) == 3.0
        assert get_remote_timeout({"remote": {"timeout_seconds": -1}}) == DEFAULT_REMOTE_TIMEOUT
