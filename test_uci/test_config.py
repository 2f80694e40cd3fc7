"""Test functions for config module."""
import logging
import os
import sys
import pytest
import yaml
from pathlib import Path
from uci_protocol import config
from uci_protocol.uci_types import CONFIG_DICT_TYPE

TEST_DIRECTORY = os.path.dirname(os.path.abspath(__file__))


def engine_config() -> CONFIG_DICT_TYPE:
    """Return a config for the scripted test engine."""
    return {"engine": {"dir": TEST_DIRECTORY,
                       "name": "uci_engine.py",
                       "interpreter": sys.executable,
                       "interpreter_options": "-u",
                       "engine_options": {"banner": None}}}


def write_config(tmp_path: Path, CONFIG: CONFIG_DICT_TYPE) -> str:
    """Write a config to a file and return its name."""
    config_file = tmp_path / "config.yml"
    with open(config_file, "w") as stream:
        yaml.safe_dump(CONFIG, stream)
    return str(config_file)


def test_config_assert__false() -> None:
    """Test that config_assert raises an exception with the provided error message."""
    with pytest.raises(config.ConfigurationError, match="some error"):
        config.config_assert(False, "some error")


def test_config_assert__true() -> None:
    """Test that config_assert does not raise when assertion is True."""
    config.config_assert(True, "no error")


def test_config_warn__true(caplog: pytest.LogCaptureFixture) -> None:
    """Test that config_warn does not log a warning when assertion is True."""
    with caplog.at_level(logging.WARNING):
        config.config_warn(True, "this should not appear")
        assert len(caplog.records) == 0  # No warning should be logged


def test_config_warn__false(caplog: pytest.LogCaptureFixture) -> None:
    """Test that config_warn logs a warning when assertion is False."""
    with caplog.at_level(logging.WARNING):
        config.config_warn(False, "test warning message")
        assert "test warning message" in caplog.text
        assert len(caplog.records) == 1
        assert caplog.records[0].levelname == "WARNING"


def test_configuration() -> None:
    """Test attribute access and lookups."""
    configuration = config.Configuration({"engine": {"name": "stockfish", "engine_options": {}}, "empty": {}})
    assert configuration.engine.name == "stockfish"
    assert configuration.lookup("engine").lookup("name") == "stockfish"
    assert configuration.missing is None
    assert not configuration.empty
    assert not configuration.engine.engine_options
    assert dict(configuration.engine.items()) == {"name": "stockfish", "engine_options": {}}


def test_insert_default_values() -> None:
    """Test that missing engine settings are filled in."""
    CONFIG = engine_config()
    config.insert_default_values(CONFIG)
    engine = CONFIG["engine"]
    assert engine["interpreter_options"] == ["-u"]
    assert engine["working_dir"] == os.getcwd()
    assert engine["silence_stderr"] is False
    assert engine["discard_welcome_message"] is False
    assert engine["receive_timeout"] == 3000
    assert engine["shutdown_grace"] == 250
    assert engine["engine_options"] == {"banner": None}


def test_insert_default_values__engine_must_be_a_section() -> None:
    """Test that an engine setting that is not a section is rejected."""
    with pytest.raises(config.ConfigurationError, match="key-value pairs"):
        config.insert_default_values({"engine": "stockfish"})


def test_load_config(tmp_path: Path) -> None:
    """Test reading a valid config."""
    CONFIG = engine_config()
    CONFIG["engine"]["receive_timeout"] = 500
    configuration = config.load_config(write_config(tmp_path, CONFIG))
    assert configuration.engine.name == "uci_engine.py"
    assert configuration.engine.receive_timeout == 500
    assert configuration.engine.interpreter_options == ["-u"]


def test_load_config__default_file_is_valid_yaml() -> None:
    """Test that the config template parses and has the engine section."""
    with open(os.path.join(TEST_DIRECTORY, "..", "config.yml.default")) as file:
        CONFIG = yaml.safe_load(file)
    config.insert_default_values(CONFIG)
    assert CONFIG["engine"]["name"] == "stockfish"
    assert CONFIG["engine"]["engine_options"] == {}
    assert CONFIG["engine"]["interpreter_options"] == []


def test_load_config__missing_engine(tmp_path: Path) -> None:
    """Test that an engine file that does not exist is rejected."""
    CONFIG = engine_config()
    CONFIG["engine"]["name"] = "no_such_engine.py"
    with pytest.raises(config.ConfigurationError, match="does not exist"):
        config.load_config(write_config(tmp_path, CONFIG))


def test_load_config__not_executable(tmp_path: Path) -> None:
    """Test that an engine without an interpreter must be executable."""
    CONFIG = engine_config()
    del CONFIG["engine"]["interpreter"]
    engine = tmp_path / "engine"
    engine.write_text("")
    engine.chmod(0o644)
    CONFIG["engine"]["dir"] = str(tmp_path)
    CONFIG["engine"]["name"] = "engine"
    if os.access(engine, os.X_OK):
        pytest.skip("The file system does not support execute permissions.")
    with pytest.raises(config.ConfigurationError, match="execute"):
        config.load_config(write_config(tmp_path, CONFIG))


@pytest.mark.parametrize("key, value, message", [("receive_timeout", 0, "positive"),
                                                 ("shutdown_grace", -1, "negative"),
                                                 ("receive_timeout", "soon", "whole number"),
                                                 ("silence_stderr", "yes", "true or false"),
                                                 ("dir", os.path.join(TEST_DIRECTORY, "missing"), "not a directory"),
                                                 ("working_dir", os.path.join(TEST_DIRECTORY, "missing"),
                                                  "not a directory")])
def test_load_config__invalid_values(tmp_path: Path, key: str, value: object, message: str) -> None:
    """Test that invalid engine settings are rejected."""
    CONFIG = engine_config()
    CONFIG["engine"][key] = value
    with pytest.raises(config.ConfigurationError, match=message):
        config.load_config(write_config(tmp_path, CONFIG))


def test_load_config__no_settings(tmp_path: Path) -> None:
    """Test that an empty config file is rejected."""
    config_file = tmp_path / "config.yml"
    config_file.write_text("")
    with pytest.raises(config.ConfigurationError, match="does not contain any settings"):
        config.load_config(str(config_file))


def test_load_config__syntax_error(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    """Test that a config that is not YAML is logged and re-raised."""
    config_file = tmp_path / "config.yml"
    config_file.write_text("engine: [unclosed\n")
    with pytest.raises(yaml.YAMLError):
        config.load_config(str(config_file))
    assert "syntax problem" in caplog.text


def test_load_config__zero_grace_warns(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    """Test that a shutdown without waiting is allowed but warned about."""
    CONFIG = engine_config()
    CONFIG["engine"]["shutdown_grace"] = 0
    with caplog.at_level(logging.WARNING):
        config.load_config(write_config(tmp_path, CONFIG))
    assert "shutdown_grace" in caplog.text
