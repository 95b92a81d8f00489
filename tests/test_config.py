"""Unit tests for quickfolio.engine.config — QuickFolioConfig and loading."""

import pytest

import quickfolio.engine.config as cfg_mod
from quickfolio.engine.config import (
    CorsConfig,
    LoggingConfig,
    QuickFolioConfig,
    get_config,
    get_environment,
    load_config,
    set_config,
)
from quickfolio.engine.errors import QuickFolioConfigError


class TestQuickFolioConfig:
    """Test the QuickFolioConfig Pydantic model."""

    def test_defaults(self):
        cfg = QuickFolioConfig()
        assert cfg.name == "QuickFolio"
        assert cfg.environment == "dev"
        assert cfg.database.url == "sqlite:///quickfolio.db"
        assert cfg.database.create_tables is True
        assert cfg.api.port == 8000
        assert cfg.logging.level == "INFO"
        assert cfg.export.date_format == "%m/%d/%Y"

    def test_valid_environments(self):
        for env in ("dev", "staging", "prod"):
            assert QuickFolioConfig(environment=env).environment == env

    def test_invalid_environment(self):
        with pytest.raises(ValueError, match="dev/staging/prod"):
            QuickFolioConfig(environment="test")

    def test_logging_level_normalised(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_invalid_logging_level(self):
        with pytest.raises(ValueError):
            LoggingConfig(level="chatty")


class TestCorsConfig:
    def test_default_headers(self):
        assert CorsConfig().headers() == {
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type, Authorization",
        }

    def test_custom_origin(self):
        cors = CorsConfig(allow_origin="https://folios.example.org", allow_methods=["GET"])
        headers = cors.headers()
        assert headers["Access-Control-Allow-Origin"] == "https://folios.example.org"
        assert headers["Access-Control-Allow-Methods"] == "GET"


class TestLoadConfig:
    def test_load_from_file(self, project_root):
        cfg = load_config(str(project_root / "quickfolio.yaml"))
        assert cfg.name == "TestFolio"
        assert cfg.version == "2.0.0"
        assert cfg.environment == "staging"
        assert cfg.logging.level == "DEBUG"
        assert cfg.database.url.endswith("test.db")

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = load_config(str(tmp_path / "absent.yaml"))
        assert cfg == QuickFolioConfig()

    def test_auto_discovery_walks_up(self, project_root, monkeypatch):
        nested = project_root / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        assert load_config().name == "TestFolio"

    def test_env_overrides_database_url(self, project_root, monkeypatch):
        monkeypatch.setenv("QUICKFOLIO_DATABASE_URL", "postgresql://u:p@db:5432/folios")
        cfg = load_config(str(project_root / "quickfolio.yaml"))
        assert cfg.database.url == "postgresql://u:p@db:5432/folios"

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "quickfolio.yaml"
        path.write_text("database: [unclosed\n", encoding="utf-8")
        with pytest.raises(QuickFolioConfigError, match="Invalid YAML"):
            load_config(str(path))

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "quickfolio.yaml"
        path.write_text("environment: local\n", encoding="utf-8")
        with pytest.raises(QuickFolioConfigError, match="Invalid configuration"):
            load_config(str(path))


class TestConfigSingleton:
    def test_get_config_loads_once(self, project_root, monkeypatch):
        monkeypatch.chdir(project_root)
        first = get_config()
        assert first is get_config()
        assert cfg_mod._config is first

    def test_set_config(self):
        cfg = QuickFolioConfig(environment="prod")
        set_config(cfg)
        assert get_config() is cfg
        assert get_environment() == "prod"
