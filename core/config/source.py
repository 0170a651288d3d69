# ============================================================================
# CONFIGURATION SOURCES
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - Key/value configuration lookup
# PURPOSE: Read settings from the environment and plugin.properties
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Sources

Every source answers get(key, default) with a string (or the default).
Sources are layered with ChainedConfigSource; the first source that knows
a key wins, so environment variables override the properties file.

Properties file format (subset of java.util.Properties):
    # comment            ! comment
    KEY=value            KEY: value            KEY value
    long.value=first \\
               second
"""

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from core.contracts import ConfigSource

logger = logging.getLogger(__name__)

PROPERTIES_FILE_NAME = "plugin.properties"


class EnvConfigSource:
    """Configuration from environment variables, with optional key prefix."""

    def __init__(self, prefix: str = "", environ: Optional[Dict[str, str]] = None):
        self.prefix = prefix
        self._environ = environ if environ is not None else os.environ

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._environ.get(f"{self.prefix}{key}")
        if value is None or value.strip() == "":
            return default
        return value.strip()


class MappingConfigSource:
    """Configuration from a plain dict (tests, programmatic overrides)."""

    def __init__(self, values: Optional[Dict[str, object]] = None):
        self._values = {k: str(v) for k, v in (values or {}).items()}

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._values.get(key, default)


def parse_properties(lines: Iterable[str]) -> Dict[str, str]:
    """
    Parse java-style properties lines into a dict.

    Later duplicates win, as with java.util.Properties.
    """
    result: Dict[str, str] = {}
    pending = ""

    for raw in lines:
        line = raw.rstrip("\r\n")
        if not pending:
            line = line.lstrip()
            if not line or line[0] in "#!":
                continue
        else:
            line = line.lstrip()

        # Odd number of trailing backslashes continues the line
        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2 == 1:
            pending += line[:-1]
            continue

        logical = pending + line
        pending = ""

        key, value = _split_property(logical)
        if key:
            result[key] = value

    if pending:
        key, value = _split_property(pending)
        if key:
            result[key] = value

    return result


def _split_property(line: str):
    # Key ends at the first "=", ":" or whitespace
    i = 0
    while i < len(line) and line[i] not in "=:" and not line[i].isspace():
        i += 1
    key = line[:i]
    rest = line[i:].lstrip()
    if rest[:1] in ("=", ":"):
        rest = rest[1:].lstrip()
    return key, rest.rstrip()


class PropertiesConfigSource:
    """
    Configuration from a plugin.properties file.

    A missing file is not fatal: a warning is logged and every lookup
    returns its default.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path: Optional[Path] = Path(path) if path else None
        self._values: Dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        if self.path is None:
            logger.warning(f"{PROPERTIES_FILE_NAME} not found, using defaults")
            return

        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                self._values = parse_properties(fh)
            logger.info(
                f"Loaded {len(self._values)} properties from {self.path}"
            )
        except FileNotFoundError:
            logger.warning(f"{self.path} not found, using defaults")
        except OSError as e:
            logger.warning(f"Can't read {self.path}: {e}")

    @classmethod
    def discover(
        cls,
        search_paths: Optional[Sequence[Union[str, Path]]] = None,
    ) -> "PropertiesConfigSource":
        """
        Load the first plugin.properties found.

        Search order: $PLUGIN_PROPERTIES, ./plugin.properties,
        ./resources/plugin.properties.
        """
        if search_paths is None:
            search_paths = [
                p for p in (
                    os.environ.get("PLUGIN_PROPERTIES"),
                    PROPERTIES_FILE_NAME,
                    os.path.join("resources", PROPERTIES_FILE_NAME),
                ) if p
            ]

        for candidate in search_paths:
            if Path(candidate).is_file():
                return cls(candidate)
        return cls(None)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._values.get(key)
        if value is None or value == "":
            return default
        return value

    def __len__(self) -> int:
        return len(self._values)


class ChainedConfigSource:
    """First source that has a value for a key wins."""

    def __init__(self, *sources: ConfigSource):
        self.sources: List[ConfigSource] = list(sources)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        for source in self.sources:
            value = source.get(key)
            if value is not None:
                return value
        return default


def default_config_source() -> ChainedConfigSource:
    """Environment first, then plugin.properties."""
    return ChainedConfigSource(
        EnvConfigSource(),
        PropertiesConfigSource.discover(),
    )


__all__ = [
    "PROPERTIES_FILE_NAME",
    "EnvConfigSource",
    "MappingConfigSource",
    "PropertiesConfigSource",
    "ChainedConfigSource",
    "parse_properties",
    "default_config_source",
]
