"""Configuration and helper tests."""

import json
import logging

import pytest
from switchyard_core.routing.router import Router
from switchyard_core.utils.config import RouterConfig, load_config
from switchyard_core.utils.helpers import decode_segment, normalize_path, request_path, strip_base_path


class TestRouterConfig:
    """Test RouterConfig."""

    def test_defaults(self):
        """Test default values."""
        config = RouterConfig()
        assert config.cache_enabled is False
        assert config.route_files == []
        assert config.level == logging.INFO

    def test_from_dict_ignores_unknown(self):
        """Test unknown keys are dropped."""
        config = RouterConfig.from_dict({"base_path": "/app", "port": 8080})
        assert config.base_path == "/app"

    def test_route_files_from_string(self):
        """Test comma separated route files."""
        config = RouterConfig.from_dict({"route_files": "routes.py, admin.py"})
        assert config.route_files == ["routes.py", "admin.py"]

    def test_from_json(self, tmp_path):
        """Test loading a JSON file."""
        path = tmp_path / "router.json"
        path.write_text(json.dumps({"cache_enabled": True, "cache_dir": "/tmp/routes"}))
        config = RouterConfig.from_json(str(path))
        assert config.cache_enabled is True
        assert config.cache_dir == "/tmp/routes"

    def test_from_env(self, monkeypatch):
        """Test loading environment variables."""
        monkeypatch.setenv("SWITCHYARD_DEBUG", "true")
        monkeypatch.setenv("SWITCHYARD_BASE_PATH", "/app")
        config = RouterConfig.from_env()
        assert config.debug is True
        assert config.base_path == "/app"
        assert config.level == logging.DEBUG

    def test_from_env_typed(self, monkeypatch):
        """Test environment values follow the field types."""
        monkeypatch.setenv("SWITCHYARD_CACHE_ENABLED", "1")
        monkeypatch.setenv("SWITCHYARD_ROUTE_FILES", "routes.py,admin.py")
        config = RouterConfig.from_env()
        assert config.cache_enabled is True
        assert config.route_files == ["routes.py", "admin.py"]

    def test_level_from_name(self):
        """Test textual log levels."""
        assert RouterConfig(log_level="warning").level == logging.WARNING
        assert RouterConfig(log_level="bogus").level == logging.INFO

    def test_merge(self):
        """Test merged values take precedence."""
        config = RouterConfig(base_path="/a").merge({"base_path": "/b", "debug": True})
        assert config.base_path == "/b"
        assert config.debug is True

    def test_to_dict(self):
        """Test conversion to a dictionary."""
        assert RouterConfig(base_path="/app").to_dict()["base_path"] == "/app"


class TestLoadConfig:
    """Test layered configuration loading."""

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        """Test environment variables beat file values."""
        path = tmp_path / "router.json"
        path.write_text(json.dumps({"base_path": "/file", "log_level": "ERROR"}))
        monkeypatch.setenv("SWITCHYARD_BASE_PATH", "/env")

        config = load_config(str(path))
        assert config.base_path == "/env"
        assert config.log_level == "ERROR"

    def test_missing_file(self, tmp_path, caplog):
        """Test a missing file falls back to defaults."""
        config = load_config(str(tmp_path / "missing.json"))
        assert config == RouterConfig()
        assert "Config file not found" in caplog.text

    def test_yaml(self, tmp_path):
        """Test loading a YAML file."""
        pytest.importorskip("yaml")
        path = tmp_path / "router.yaml"
        path.write_text("base_path: /yaml\nroute_files:\n  - routes.py\n")
        config = load_config(str(path))
        assert config.base_path == "/yaml"
        assert config.route_files == ["routes.py"]

    def test_router_from_config(self):
        """Test the router applies its logging level."""
        Router.from_config(RouterConfig(log_level="DEBUG"))
        assert logging.getLogger("switchyard_core").level == logging.DEBUG
        logging.getLogger("switchyard_core").setLevel(logging.NOTSET)


class TestHelpers:
    """Test path helpers."""

    def test_normalize_path(self):
        """Test slash normalisation."""
        assert normalize_path("") == "/"
        assert normalize_path("users//5/") == "/users/5"
        assert normalize_path("/") == "/"

    def test_strip_base_path(self):
        """Test mount point removal."""
        assert strip_base_path("/app/users", "/app") == "/users"
        assert strip_base_path("/app", "/app/") == "/"
        assert strip_base_path("/application", "/app") == "/application"
        assert strip_base_path("/users", None) == "/users"

    def test_request_path(self):
        """Test URIs reduce to routable paths."""
        assert request_path("/users/5?tab=posts#top") == "/users/5"
        assert request_path("https://example.com/app/a%20b", "/app") == "/a b"
        assert request_path("") == "/"

    def test_request_path_keeps_encoded_slash(self):
        """Test %2F and %25 survive decoding so segments stay intact."""
        assert request_path("/files/a%2Fb") == "/files/a%2Fb"
        assert request_path("/files/a%2fb") == "/files/a%2Fb"
        assert request_path("/files/100%25") == "/files/100%25"
        assert request_path("/caf%C3%A9/menu") == "/café/menu"

    def test_decode_segment(self):
        """Test single segment decoding."""
        assert decode_segment("a%20b") == "a b"
        assert decode_segment("a%2Fb") == "a%2Fb"
        assert decode_segment("50%25off") == "50%25off"
        assert decode_segment("plain") == "plain"
