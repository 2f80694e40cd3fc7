"""Code related to the config that describes how to launch and talk to an engine."""
from __future__ import annotations
import yaml
import os
import logging
from typing import Any, ItemsView, Callable, Optional
from uci_protocol.uci_types import CONFIG_DICT_TYPE

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """The config, or the engine it points to, cannot be used."""


class Configuration:
    """The config or a sub-config of an engine session."""

    def __init__(self, parameters: CONFIG_DICT_TYPE) -> None:
        """:param parameters: A `dict` containing the config."""
        self.config = parameters

    def __getattr__(self, name: str) -> Any:
        """
        Enable the use of `config.key1.key2`.

        :param name: The key to get its value.
        :return: The value of the key.
        """
        return self.lookup(name)

    def lookup(self, name: str) -> Any:
        """
        Get the value of a key.

        :param name: The key to get its value.
        :return: `Configuration` if the value is a `dict` else returns the value.
        """
        data = self.config.get(name)
        return Configuration(data) if isinstance(data, dict) else data

    def items(self) -> ItemsView[str, Any]:
        """:return: All the key-value pairs in this config."""
        return self.config.items()

    def __bool__(self) -> bool:
        """Whether `self.config` is empty."""
        return bool(self.config)


def config_assert(assertion: bool, error_message: str) -> None:
    """Raise a ConfigurationError if an assertion is false."""
    if not assertion:
        raise ConfigurationError(error_message)


def config_warn(assertion: bool, warning_message: str) -> None:
    """Log a warning message if an assertion is false."""
    if not assertion:
        logger.warning(warning_message)


def check_config_section(config: CONFIG_DICT_TYPE, data_name: str, data_type: type, subsection: str = "") -> None:
    """
    Check the validity of a config section.

    :param config: The config section.
    :param data_name: The key to check its value.
    :param data_type: The expected data type.
    :param subsection: The subsection of the key.
    """
    config_part = config[subsection] if subsection else config
    sub = f"`{subsection}` sub" if subsection else ""
    data_location = f"`{data_name}` subsection in `{subsection}`" if subsection else f"Section `{data_name}`"
    type_error_message = {str: f"{data_location} must be a string wrapped in quotes.",
                          dict: f"{data_location} must be a dictionary with indented keys followed by colons.",
                          bool: f"{data_location} must be true or false.",
                          int: f"{data_location} must be a whole number.",
                          list: f"{data_location} must be a list."}
    config_assert(data_name in config_part, f"Your config.yml does not have required {sub}section `{data_name}`.")
    config_assert(isinstance(config_part[data_name], data_type), type_error_message[data_type])


def set_config_default(config: CONFIG_DICT_TYPE, *sections: str, key: str, default: Any,
                       force_empty_values: bool = False) -> CONFIG_DICT_TYPE:
    """
    Fill a specific config key with the default value if it is missing.

    :param config: The config.
    :param sections: The sections that the key is in.
    :param key: The key to set.
    :param default: The default value.
    :param force_empty_values: Whether an empty value should be replaced with the default value.
    :return: The new config with the default value inserted if needed.
    """
    subconfig = config
    for section in sections:
        subconfig = subconfig.setdefault(section, {})
        if not isinstance(subconfig, dict):
            raise ConfigurationError(f"The {section} section in {sections} should hold a set of key-value pairs, "
                                     "not a value.")
    if force_empty_values:
        if subconfig.get(key) in [None, ""]:
            subconfig[key] = default
    else:
        subconfig.setdefault(key, default)
    return subconfig


def change_value_to_list(config: CONFIG_DICT_TYPE, *sections: str, key: str) -> None:
    """
    Change a single value to a list. e.g. "-O" becomes ["-O"].

    :param config: The config.
    :param sections: The sections that the key is in.
    :param key: The key to set.
    """
    subconfig = set_config_default(config, *sections, key=key, default=[])

    if subconfig[key] is None:
        subconfig[key] = []

    if not isinstance(subconfig[key], list):
        subconfig[key] = [subconfig[key]]


def insert_default_values(CONFIG: CONFIG_DICT_TYPE) -> None:
    """
    Insert the default values of most keys to the config if they are missing.

    :param CONFIG: The config.
    """
    set_config_default(CONFIG, "engine", key="interpreter", default=None)
    set_config_default(CONFIG, "engine", key="working_dir", default=os.getcwd(), force_empty_values=True)
    set_config_default(CONFIG, "engine", key="engine_options", default={}, force_empty_values=True)
    set_config_default(CONFIG, "engine", key="silence_stderr", default=False)
    set_config_default(CONFIG, "engine", key="discard_welcome_message", default=False)
    set_config_default(CONFIG, "engine", key="receive_timeout", default=3000)
    set_config_default(CONFIG, "engine", key="shutdown_grace", default=250)
    change_value_to_list(CONFIG, "engine", key="interpreter_options")


def log_config(CONFIG: CONFIG_DICT_TYPE, alternate_log_function: Optional[Callable[[str], Any]] = None) -> None:
    """
    Log the config to make debugging easier.

    :param CONFIG: The config.
    """
    destination = alternate_log_function or logger.debug
    destination(f"Config:\n{yaml.dump(CONFIG, sort_keys=False)}")
    destination("====================")


def validate_config(CONFIG: CONFIG_DICT_TYPE) -> None:
    """Check if the config is valid."""
    check_config_section(CONFIG, "engine", dict)
    check_config_section(CONFIG, "dir", str, "engine")
    check_config_section(CONFIG, "name", str, "engine")
    check_config_section(CONFIG, "engine_options", dict, "engine")
    check_config_section(CONFIG, "interpreter_options", list, "engine")
    check_config_section(CONFIG, "silence_stderr", bool, "engine")
    check_config_section(CONFIG, "discard_welcome_message", bool, "engine")
    check_config_section(CONFIG, "receive_timeout", int, "engine")
    check_config_section(CONFIG, "shutdown_grace", int, "engine")

    engine_config = CONFIG["engine"]
    config_assert(os.path.isdir(engine_config["dir"]),
                  f'Your engine directory `{engine_config["dir"]}` is not a directory.')

    working_dir = engine_config.get("working_dir")
    config_assert(not working_dir or os.path.isdir(working_dir),
                  f"Your engine's working directory `{working_dir}` is not a directory.")

    engine = os.path.join(engine_config["dir"], engine_config["name"])
    config_assert(os.path.isfile(engine), f"The engine {engine} file does not exist.")
    config_assert(os.access(engine, os.X_OK) or bool(engine_config["interpreter"]),
                  f"The engine {engine} doesn't have execute (x) permission. Try: chmod +x {engine}")

    config_assert(engine_config["receive_timeout"] > 0, "`receive_timeout` in `engine` must be a positive number "
                                                        "of milliseconds.")
    config_assert(engine_config["shutdown_grace"] >= 0, "`shutdown_grace` in `engine` cannot be negative.")
    config_warn(engine_config["shutdown_grace"] > 0, "With engine.shutdown_grace set to 0, the engine is terminated "
                                                     "without waiting for it to quit on its own.")


def load_config(config_file: str) -> Configuration:
    """
    Read the config.

    :param config_file: The filename of the config (usually `config.yml`).
    :return: A `Configuration` object containing the config.
    """
    with open(config_file) as stream:
        try:
            CONFIG = yaml.safe_load(stream)
        except Exception:
            logger.exception("There appears to be a syntax problem with your config.yml")
            raise

    config_assert(isinstance(CONFIG, dict), f"The config file {config_file} does not contain any settings.")
    insert_default_values(CONFIG)
    log_config(CONFIG)
    validate_config(CONFIG)

    return Configuration(CONFIG)
