"""Some type hints that can be accessed by all other python files."""
from typing import Any, Union

COMMANDS_TYPE = list[str]
OPTION_VALUE_TYPE = Union[str, int, bool, None]
OPTIONS_TYPE = dict[str, OPTION_VALUE_TYPE]

# Types that still use `Any`.
CONFIG_DICT_TYPE = dict[str, Any]
