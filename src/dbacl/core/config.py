"""Provider configuration.

Providers are activated with a flat mapping of option names to string
values, the same shape as a `key=value` properties file. This module holds
the option names understood by the rule-file provider, the validation of
those options, and the small parsers (durations, properties files) they
rely on.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from dbacl.core.errors import ConfigurationError

SECURITY_CONFIG_FILE = "security.config-file"
SECURITY_REFRESH_PERIOD = "security.refresh-period"
ACCESS_CONTROL_NAME = "access-control.name"

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ns|us|ms|s|m|h|d)\s*$")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
}


def parse_duration(value: str) -> float:
    """
    Parse a duration such as `1ms`, `30s` or `1.5h` into seconds.

    Raises:
        ConfigurationError: If the value has no number or an unknown unit.
    """
    m = _DURATION_RE.match(value or "")
    if not m:
        raise ConfigurationError(
            f"Invalid duration '{value}' (expected <number><unit>, unit one of "
            f"{', '.join(_UNIT_SECONDS)})"
        )
    return float(m.group(1)) * _UNIT_SECONDS[m.group(2)]


@dataclass(frozen=True)
class FileBasedAccessControlConfig:
    """
    Validated options of the rule-file provider.

    Attributes:
        config_file: Path of the JSON rule file.
        refresh_period: Seconds between reload attempts, or None to load
                        the file once and never reload it.
    """

    config_file: Path
    refresh_period: float | None = None

    @classmethod
    def from_properties(cls, properties: Mapping[str, str]) -> FileBasedAccessControlConfig:
        unknown = sorted(set(properties) - {SECURITY_CONFIG_FILE, SECURITY_REFRESH_PERIOD})
        if unknown:
            raise ConfigurationError(f"Unknown configuration options: {', '.join(unknown)}")

        config_file = (properties.get(SECURITY_CONFIG_FILE) or "").strip()
        if not config_file:
            raise ConfigurationError(f"{SECURITY_CONFIG_FILE} must be set")

        raw_period = properties.get(SECURITY_REFRESH_PERIOD)
        refresh_period = parse_duration(raw_period) if raw_period is not None else None
        return cls(config_file=Path(config_file), refresh_period=refresh_period)


def load_properties(path: str | Path) -> dict[str, str]:
    """
    Read a `key=value` properties file.

    Blank lines and lines starting with `#` or `!` are ignored. Keys and
    values are stripped of surrounding whitespace.
    """
    properties: dict[str, str] = {}
    for lineno, raw in enumerate(Path(path).read_text(encoding="utf-8").splitlines(), 1):
        line = raw.strip()
        if not line or line[0] in "#!":
            continue
        if "=" not in line:
            raise ConfigurationError(f"{path}:{lineno}: expected key=value, got '{line}'")
        key, value = line.split("=", 1)
        properties[key.strip()] = value.strip()
    return properties
