"""Tests for configuration loading and validation."""

import toml

from xtrack.config import (
    API_URL_ENV,
    DEFAULT_CONFIG,
    create_template_config,
    load_config,
    validate_config,
)


class TestLoadConfig:
    def test_missing_file_yields_defaults(self, temp_dir, monkeypatch):
        monkeypatch.delenv(API_URL_ENV, raising=False)

        config = load_config(temp_dir / "absent.toml")

        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG

    def test_partial_file_merges_over_defaults(self, temp_dir, monkeypatch):
        monkeypatch.delenv(API_URL_ENV, raising=False)
        path = temp_dir / "config.toml"
        path.write_text('[api]\nmode = "demo"\n\n[dashboard]\ntable_limit = 5\n')

        config = load_config(path)

        assert config["api"]["mode"] == "demo"
        assert config["api"]["base_url"] == DEFAULT_CONFIG["api"]["base_url"]
        assert config["dashboard"]["table_limit"] == 5
        assert config["dashboard"]["default_filter"] == "all"

    def test_env_overrides_base_url(self, temp_dir, monkeypatch):
        monkeypatch.setenv(API_URL_ENV, "http://localhost:8080/api")

        config = load_config(temp_dir / "absent.toml")

        assert config["api"]["base_url"] == "http://localhost:8080/api"

    def test_unparseable_file_yields_defaults(self, temp_dir, monkeypatch):
        monkeypatch.delenv(API_URL_ENV, raising=False)
        path = temp_dir / "config.toml"
        path.write_text("[api\nbase_url = ")

        assert load_config(path) == DEFAULT_CONFIG

    def test_template_round_trips(self, temp_dir, monkeypatch):
        monkeypatch.delenv(API_URL_ENV, raising=False)
        path = create_template_config(temp_dir / "sub" / "config.toml")

        assert path.exists()
        assert toml.load(path) == DEFAULT_CONFIG
        assert load_config(path) == DEFAULT_CONFIG


class TestValidateConfig:
    def test_defaults_are_valid(self):
        assert validate_config(DEFAULT_CONFIG) == []

    def test_reports_each_problem(self):
        config = {
            "api": {"base_url": "", "timeout": 0, "mode": "remote"},
            "dashboard": {"page_size": 500, "table_limit": 0, "default_filter": "1y"},
        }

        problems = validate_config(config)

        assert len(problems) == 5
        assert any("base_url" in p for p in problems)
        assert any("default_filter" in p for p in problems)

    def test_demo_mode_needs_no_url(self):
        config = {"api": {"base_url": "", "mode": "demo"}, "dashboard": {}}

        assert validate_config(config) == []

    def test_unknown_mode(self):
        assert validate_config({"api": {"mode": "offline"}}) == ["api.mode must be 'remote' or 'demo'"]
