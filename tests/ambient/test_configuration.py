"""
Configuration loading.
"""

import pytest

from stock_config import get_active_config
from stock_config.loader import compute_checksum, parse_configuration

BASE = {
    "name": "test",
    "database": {"url": "sqlite://"},
}


def write_config(tmp_path, text: str):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


class TestGetActiveConfig:
    def test_default_set(self, monkeypatch):
        monkeypatch.delenv("STOCK_CONFIG", raising=False)

        config = get_active_config()

        assert config.name == "default"
        assert config.close.currency == "SAR"
        assert config.close.max_comment_length == 1000
        assert config.close.default_copy_prices is True
        assert len(config.checksum) == 64

    def test_env_var_overrides_default(self, tmp_path, monkeypatch):
        path = write_config(tmp_path, "name: staging\ndatabase:\n  url: sqlite://\n")
        monkeypatch.setenv("STOCK_CONFIG", str(path))

        assert get_active_config().name == "staging"

    def test_argument_wins_over_env_var(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STOCK_CONFIG", str(tmp_path / "missing.yaml"))
        path = write_config(tmp_path, "name: explicit\ndatabase:\n  url: sqlite://\n")

        assert get_active_config(path).name == "explicit"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")

    def test_load_is_logged_with_checksum(self, tmp_path, captured_logs):
        path = write_config(tmp_path, "name: logged\ndatabase:\n  url: sqlite://\n")

        config = get_active_config(path)

        loaded = [r for r in captured_logs() if r["message"] == "config_loaded"]
        assert loaded[0]["config_name"] == "logged"
        assert loaded[0]["checksum"] == config.checksum


class TestParseConfiguration:
    def test_defaults_for_optional_sections(self):
        config = parse_configuration(BASE)

        assert config.database.pool_size == 20
        assert config.logging.level == "INFO"
        assert config.close.currency == "SAR"

    def test_database_url_required(self):
        with pytest.raises(KeyError):
            parse_configuration({"database": {}})

    def test_database_section_required(self):
        with pytest.raises(KeyError):
            parse_configuration({"name": "x"})

    @pytest.mark.parametrize(
        "section,values",
        [
            ("database", {"url": "sqlite://", "pool_size": "many"}),
            ("database", {"url": "sqlite://", "echo": "yes"}),
            ("logging", {"level": "CHATTY"}),
            ("close", {"currency": "RIYAL"}),
            ("close", {"max_comment_length": 0}),
            ("close", {"default_copy_prices": 1}),
        ],
    )
    def test_malformed_values(self, section, values):
        data = dict(BASE)
        data[section] = values

        with pytest.raises(ValueError):
            parse_configuration(data)

    def test_log_level_is_case_insensitive(self):
        config = parse_configuration({**BASE, "logging": {"level": "debug"}})

        assert config.logging.level == "DEBUG"

    def test_checksum_is_order_independent(self):
        a = {"name": "x", "database": {"url": "sqlite://", "echo": False}}
        b = {"database": {"echo": False, "url": "sqlite://"}, "name": "x"}

        assert compute_checksum(a) == compute_checksum(b)
        assert compute_checksum(a) != compute_checksum({**a, "name": "y"})
