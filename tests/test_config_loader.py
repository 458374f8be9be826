"""Tests for the config_loader module."""
import pytest

from lyricsync.cache import LyricCache
from lyricsync.config_loader import ConfigLoader, LyricSyncConfig
from lyricsync.exceptions import ConfigurationError
from lyricsync.models import ParseOptions
from lyricsync.storage import DirectoryBackend, MemoryBackend


class TestConfigLoader:
    """Tests for ConfigLoader class."""

    def test_load_valid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("cache_prefix: test_\nword_split: true\n", encoding="utf-8")
        assert ConfigLoader().load_config(str(path)) == {"cache_prefix": "test_", "word_split": True}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigLoader().load_config(str(tmp_path / "missing.yaml"))

    def test_directory_is_not_a_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ConfigLoader().load_config(str(tmp_path))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("key: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            ConfigLoader().load_config(str(path))

    def test_root_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            ConfigLoader().load_config(str(path))

    def test_load_returns_typed_config(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("align: top\npoll_interval_ms: 100\n", encoding="utf-8")
        config = ConfigLoader().load(str(path))
        assert config.align == "top"
        assert config.poll_interval == 0.1


class TestLyricSyncConfig:
    """Tests for LyricSyncConfig dataclass."""

    def test_defaults(self):
        config = LyricSyncConfig.from_dict({})
        assert config.cache_prefix == "lyric_cache_"
        assert config.cache_expiration_days == 7
        assert config.poll_interval == 0.05
        assert config.align == "center"

    def test_unknown_keys_ignored(self):
        config = LyricSyncConfig.from_dict({"theme": "dark", "line_size": 40})
        assert config.line_size == 40

    @pytest.mark.parametrize("override", [
        {"cache_prefix": ""},
        {"cache_expiration_days": 0},
        {"poll_interval_ms": -5},
        {"line_size": "big"},
        {"memory_quota_bytes": -1},
        {"align": "bottom"},
        {"word_split": "yes"},
        {"base_time": True},
        {"log_level": "LOUD"},
    ])
    def test_invalid_values(self, override):
        with pytest.raises(ConfigurationError):
            LyricSyncConfig.from_dict(override)

    def test_parse_options(self):
        config = LyricSyncConfig.from_dict({"base_time": 1, "word_split": True})
        assert config.parse_options() == ParseOptions(base_time=1.0, word_split=True)

    def test_memory_only_cache(self):
        cache = LyricSyncConfig.from_dict({"memory_quota_bytes": 1024}).build_cache()
        assert isinstance(cache, LyricCache)
        assert len(cache.backends) == 1
        assert cache.backends[0].quota_bytes == 1024
        assert cache.expiration_ms == 7 * 24 * 60 * 60 * 1000

    def test_directory_tier_added(self, tmp_path):
        config = LyricSyncConfig.from_dict({"cache_dir": str(tmp_path), "cache_prefix": "x_"})
        cache = config.build_cache()
        assert [type(b) for b in cache.backends] == [MemoryBackend, DirectoryBackend]
        assert cache.prefix == "x_"
