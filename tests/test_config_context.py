"""
tests/test_config_context.py — Config Parsing & Live Reload
============================================================

Tests config.yaml parsing, fingerprinting and
:meth:`BotContext.reload_if_changed`.
"""

from __future__ import annotations

import logging
from datetime import UTC, time

import pytest

from boarbot.config import (
    BotConfig,
    ConfigError,
    config_fingerprint,
    load_config,
    parse_config,
)
from boarbot.context import BotContext

from conftest import make_raw_config, write_config


class TestParseConfig:
    def test_minimal_config_uses_defaults(self):
        cfg = parse_config({"default_channel": 1})
        assert isinstance(cfg, BotConfig)
        assert cfg.debug_mode is False
        assert cfg.log_channel is None
        assert cfg.numbers.poll_interval_seconds == 120
        assert cfg.numbers.notification_time == time(0, 0, tzinfo=UTC)
        assert cfg.numbers.cache_warm_delay == 1.0
        assert str(cfg.paths.user_dir).endswith("users")

    def test_missing_default_channel(self):
        with pytest.raises(ConfigError, match="default_channel"):
            parse_config({})

    def test_non_mapping_root(self):
        with pytest.raises(ConfigError):
            parse_config(["not", "a", "mapping"])

    def test_notification_time(self):
        cfg = parse_config({"default_channel": 1, "numbers": {"notification_time": "13:45"}})
        assert cfg.numbers.notification_time == time(13, 45, tzinfo=UTC)

    def test_bad_notification_time(self):
        with pytest.raises(ConfigError):
            parse_config({"default_channel": 1, "numbers": {"notification_time": "noon"}})

    def test_powerup_range_must_be_ordered(self):
        with pytest.raises(ConfigError):
            parse_config(
                {"default_channel": 1, "numbers": {"powerup_min_ms": 10, "powerup_max_ms": 5}}
            )

    def test_boar_ids_follow_rarity_order(self, tmp_path):
        cfg = parse_config(make_raw_config(tmp_path))
        assert cfg.boar_ids == ("bacon", "blob", "golden")

    def test_raw_mapping_is_kept(self, tmp_path):
        raw = make_raw_config(tmp_path, custom_section={"anything": 1})
        assert parse_config(raw).raw["custom_section"] == {"anything": 1}


class TestLoadConfig:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("default_channel: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_json_also_parses(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text('{"default_channel": 55}', encoding="utf-8")
        assert load_config(path).default_channel == 55


class TestFingerprint:
    def test_one_byte_changes_fingerprint(self, config_path):
        before = config_fingerprint(config_path)
        config_path.write_bytes(config_path.read_bytes() + b" ")
        assert config_fingerprint(config_path) != before

    def test_same_bytes_same_fingerprint(self, config_path):
        assert config_fingerprint(config_path) == config_fingerprint(config_path)


class TestReloadIfChanged:
    def test_unchanged_file_is_not_reloaded(self, ctx):
        snapshot = ctx.snapshot
        assert ctx.reload_if_changed() is False
        assert ctx.snapshot is snapshot

    def test_changed_file_is_reloaded(self, ctx, config_path, database_folder):
        write_config(config_path, make_raw_config(database_folder, default_channel=4242))

        assert ctx.reload_if_changed() is True
        assert ctx.config.default_channel == 4242
        assert ctx.fingerprint == config_fingerprint(config_path)

    def test_broken_reload_keeps_previous_config(self, ctx, config_path):
        old_config = ctx.config
        config_path.write_text("default_channel: [unclosed", encoding="utf-8")

        assert ctx.reload_if_changed() is False
        assert ctx.config is old_config
        assert ctx.fingerprint == config_fingerprint(config_path)
        # Same broken bytes are not parsed again
        assert ctx.reload_if_changed() is False

    def test_store_follows_reloaded_paths(self, ctx, config_path, tmp_path):
        write_config(config_path, make_raw_config(tmp_path / "moved"))
        ctx.reload_if_changed()
        assert ctx.store.paths.database_folder == tmp_path / "moved"

    def test_debug_mode_sets_log_level(self, config_path, database_folder):
        write_config(config_path, make_raw_config(database_folder, debug_mode=True))
        BotContext.load(config_path)
        assert logging.getLogger("boarbot").level == logging.DEBUG

        write_config(config_path, make_raw_config(database_folder, debug_mode=False))
        BotContext.load(config_path)
        assert logging.getLogger("boarbot").level == logging.INFO
