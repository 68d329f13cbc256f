import json

import pytest
import yaml

from cors_diagnoser.core.models import CorsConfiguration
from cors_diagnoser.utils.config import (
    CONFIG_TEMPLATE,
    Config,
    MiddlewareOptions,
    load_cors_configuration,
)


@pytest.fixture
def temp_config_file(tmp_path):
    def _create_config(data, filename="cors-diagnoser.yaml"):
        file_path = tmp_path / filename
        if data is None:
            file_path.touch()
        else:
            with open(file_path, "w", encoding="utf-8") as f:
                yaml.dump(data, f)
        return file_path

    return _create_config


def test_template_is_a_valid_config(tmp_path):
    path = tmp_path / "cors-diagnoser.yaml"
    path.write_text(CONFIG_TEMPLATE, encoding="utf-8")
    config = Config(path)
    config.load()
    assert config.environment == "production"
    assert config.middleware.max_history_size == 100
    assert config.probe["origin"] == "http://localhost:3000"
    assert config.expected.credentials is True


def test_empty_file_uses_defaults(temp_config_file):
    config = Config(temp_config_file(None))
    assert config.load() == {}
    assert config.environment == "production"
    assert config.middleware == MiddlewareOptions()
    assert config.probe == {}
    assert config.expected is None


def test_missing_file():
    with pytest.raises(FileNotFoundError, match="cors-diagnoser init"):
        Config("does-not-exist.yaml").load()


def test_root_must_be_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError, match="root must be a mapping"):
        Config(path).load()


def test_env_var_expansion(temp_config_file, monkeypatch):
    data = {
        "probe": {"origin": "${APP_ORIGIN}"},
        "expected": {"origin": ["${APP_ORIGIN}", "https://static.test"]},
    }
    monkeypatch.setenv("APP_ORIGIN", "https://app.test")
    config = Config(temp_config_file(data))
    config.load()
    assert config.probe["origin"] == "https://app.test"
    assert config.expected.origin == ["https://app.test", "https://static.test"]


@pytest.mark.parametrize(
    "data,message",
    [
        ({"environment": "staging"}, "environment must be one of"),
        ({"middleware": {"max_history_size": 0}}, "max_history_size"),
        ({"middleware": {"verbose": "yes"}}, "verbose must be a boolean"),
        ({"middleware": {"colour": True}}, "Unknown middleware option"),
        ({"probe": {"timeout": -1}}, "probe.timeout"),
        ({"probe": "http://x"}, "probe must be a mapping"),
        ({"expected": {"origin": 5}}, "origin must be"),
        ({"expected": {"max_age": "600"}}, "max_age must be an integer"),
    ],
)
def test_invalid_configs(temp_config_file, data, message):
    with pytest.raises(ValueError, match=message):
        Config(temp_config_file(data)).load()


def test_middleware_options_aliases():
    options = MiddlewareOptions.from_dict({"enableHistory": False, "maxHistorySize": 3, "securityChecks": False})
    assert options == MiddlewareOptions(enable_history=False, max_history_size=3, security_checks=False)


def test_load_cors_configuration_yaml(temp_config_file):
    path = temp_config_file({"origin": "https://a.com", "allowedHeaders": "Content-Type, X-Token"}, "cors.yaml")
    config = load_cors_configuration(path)
    assert config == CorsConfiguration(origin="https://a.com", allowed_headers=["Content-Type", "X-Token"])


def test_load_cors_configuration_nested_json(tmp_path):
    path = tmp_path / "cors.json"
    path.write_text(json.dumps({"cors": {"origin": True, "credentials": False}}), encoding="utf-8")
    assert load_cors_configuration(path) == CorsConfiguration(origin=True, credentials=False)


def test_load_cors_configuration_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_cors_configuration(tmp_path / "missing.yaml")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError, match="Could not parse"):
        load_cors_configuration(broken)

    unknown = tmp_path / "unknown.yaml"
    unknown.write_text("origins: '*'\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Unknown CORS configuration property"):
        load_cors_configuration(unknown)
