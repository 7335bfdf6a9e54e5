"""Tests for sync.config: the process-wide fallback mode decision."""

from __future__ import annotations

from pathlib import Path

import pytest

from storefront.sync.config import (
    FallbackMode,
    get_fallback_mode,
    load_remote_config,
    reset_fallback_mode,
    resolve_fallback_mode,
    save_remote_config,
    set_fallback_mode,
)

REAL = {"remote": {"url": "https://abc.supabase.co", "key": "anon-key-123"}}


class TestResolve:
    def test_empty_config_is_local(self):
        mode = resolve_fallback_mode({}, environ={})
        assert mode.local_only
        assert "URL" in mode.reason

    @pytest.mark.parametrize(
        "url,key",
        [
            ("your_supabase_project_url", "anon"),
            ("https://placeholder.supabase.co", "anon"),
            ("https://abc.supabase.co", "placeholder-key"),
            ("https://abc.supabase.co", "your_supabase_anon_key"),
            ("https://abc.supabase.co", ""),
        ],
    )
    def test_placeholders_are_local(self, url, key):
        mode = resolve_fallback_mode({"remote": {"url": url, "key": key}}, environ={})
        assert mode.local_only

    def test_non_http_url_is_local(self):
        mode = resolve_fallback_mode({"remote": {"url": "ftp://db", "key": "k"}}, environ={})
        assert mode.local_only

    def test_config_enables_remote(self):
        mode = resolve_fallback_mode(REAL, environ={})
        assert mode.remote_available
        assert mode.url == "https://abc.supabase.co"
        assert mode.key == "anon-key-123"

    def test_env_wins(self):
        env = {"STOREFRONT_REMOTE_URL": "https://env.supabase.co/", "STOREFRONT_REMOTE_KEY": "env-key"}
        mode = resolve_fallback_mode(REAL, environ=env)
        assert mode.url == "https://env.supabase.co"
        assert mode.key == "env-key"

    def test_timeout_from_config(self):
        config = {"remote": {**REAL["remote"], "timeout_seconds": 2.5}}
        assert resolve_fallback_mode(config, environ={}).timeout == 2.5

    def test_describe_hides_key(self):
        info = FallbackMode.remote("https://abc.supabase.co", "secret").describe()
        assert info["mode"] == "remote"
        assert "secret" not in str(info)


class TestProcessWide:
    def test_computed_once(self):
        first = get_fallback_mode({})
        assert first.local_only
        # Later calls ignore the config argument.
        assert get_fallback_mode(REAL) is first

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("STOREFRONT_REMOTE_URL", "https://abc.supabase.co")
        monkeypatch.setenv("STOREFRONT_REMOTE_KEY", "k")
        assert get_fallback_mode().remote_available

    def test_set_and_reset(self):
        forced = set_fallback_mode(FallbackMode.local("forced"))
        assert get_fallback_mode(REAL) is forced
        reset_fallback_mode()
        assert get_fallback_mode(REAL).remote_available


class TestConfigFile:
    def test_missing_config(self, tmp_path: Path):
        assert load_remote_config(tmp_path) == {}

    def test_save_preserves_other_keys(self, store_dir: Path):
        before = load_remote_config(store_dir)
        config = save_remote_config(store_dir, "https://abc.supabase.co", "k", timeout=4)
        assert config["device_id"] == before["device_id"]
        assert load_remote_config(store_dir)["remote"] == {
            "url": "https://abc.supabase.co",
            "key": "k",
            "timeout_seconds": 4,
        }
