"""Environment helpers: .env loading and ``${VAR}`` expansion.

.env files are read with python-dotenv.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

__all__ = ["expand_env_vars", "expand_options", "load_env_file"]

# ${NAME} or $NAME
_REFERENCE = re.compile(r"\$\{(?P<braced>[^}]+)\}|\$(?P<bare>[A-Za-z_][A-Za-z0-9_]*)")



def load_env_file(path: Optional[Union[str, Path]] = None, *, override: bool = False) -> bool:
    """Populate ``os.environ`` from a .env file.

    Variables already set in the environment win unless ``override`` is
    True. With no ``path`` python-dotenv searches upwards from the current
    directory. Returns True if a file was found and read.
    """
    loaded = load_dotenv(dotenv_path=path, override=override)
    if path is not None and not loaded:
        logger.warning("Env file %s not found or empty", path)
    return loaded


def expand_env_vars(value: str, *, strict: bool = False) -> str:
    """Substitute ``${NAME}`` and ``$NAME`` references in ``value``.

    Unset variables are left as written, or raise ``KeyError`` when
    ``strict`` is set.

    Example:
        >>> os.environ["S3_ENDPOINT"] = "http://localhost:9000"
        >>> expand_env_vars("endpoint_url=${S3_ENDPOINT}")
        'endpoint_url=http://localhost:9000'
    """

    def substitute(match: re.Match[str]) -> str:
        name = match.group("braced") or match.group("bare")
        if name in os.environ:
            return os.environ[name]
        if strict:
            raise KeyError(f"Environment variable not set: {name}")
        return match.group(0)

    return _REFERENCE.sub(substitute, value)


def expand_options(options: Dict[str, Any], *, strict: bool = False) -> Dict[str, Any]:
    """Expand references in every string value, descending into nested dicts."""
    expanded: Dict[str, Any] = {}
    for key, value in options.items():
        if isinstance(value, dict):
            value = expand_options(value, strict=strict)
        elif isinstance(value, str):
            value = expand_env_vars(value, strict=strict)
        expanded[key] = value
    return expanded
