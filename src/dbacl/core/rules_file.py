"""Rule file loading.

Rule files are JSON documents with up to five optional top-level sections
(`principals`, `catalogs`, `schemas`, `tables`, `session_properties`), each a
list of rule objects. Parsing is strict: unknown keys, wrong value types,
unknown permission names and invalid regular expressions all fail the whole
file with a ConfigParseError. A file is either loaded completely or not at
all.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Callable, Mapping

from dbacl.core.errors import ConfigParseError
from dbacl.core.principals import USER_PLACEHOLDER, PrincipalRule
from dbacl.core.rules import (
    ANY,
    AccessMode,
    CatalogRule,
    RuleSet,
    SchemaRule,
    SessionPropertyRule,
    TablePrivilege,
    TableRule,
)


class _RuleError(ValueError):
    """Problem with one rule entry; converted to ConfigParseError by the loader."""


def _check_keys(entry: Mapping[str, Any], allowed: set[str], required: set[str]) -> None:
    unknown = sorted(set(entry) - allowed)
    if unknown:
        raise _RuleError(f"unknown keys {unknown}")
    missing = sorted(required - set(entry))
    if missing:
        raise _RuleError(f"missing keys {missing}")


def _pattern(entry: Mapping[str, Any], key: str) -> re.Pattern[str]:
    raw = entry.get(key)
    if raw is None:
        return ANY
    if not isinstance(raw, str):
        raise _RuleError(f"'{key}' must be a string")
    try:
        return re.compile(raw)
    except re.error as exc:
        raise _RuleError(f"invalid regex for '{key}': {exc}") from exc


def _bool(entry: Mapping[str, Any], key: str) -> bool:
    value = entry[key]
    if not isinstance(value, bool):
        raise _RuleError(f"'{key}' must be true or false")
    return value


def _principal_rule(entry: Mapping[str, Any]) -> PrincipalRule:
    _check_keys(
        entry,
        {"user_pattern", "principal_pattern", "allow"},
        {"principal_pattern", "allow"},
    )
    template = entry["principal_pattern"]
    if not isinstance(template, str):
        raise _RuleError("'principal_pattern' must be a string")
    # Validate the template with a harmless stand-in for the username.
    try:
        re.compile(template.replace(USER_PLACEHOLDER, "user"))
    except re.error as exc:
        raise _RuleError(f"invalid regex for 'principal_pattern': {exc}") from exc
    return PrincipalRule(
        principal_template=template,
        allow=_bool(entry, "allow"),
        user_regex=_pattern(entry, "user_pattern"),
    )


def _access_mode(value: Any) -> AccessMode:
    if value is True:
        return AccessMode.ALL
    if value is False:
        return AccessMode.NONE
    try:
        return AccessMode(value)
    except ValueError as exc:
        allowed = ", ".join(f'"{m.value}"' for m in AccessMode)
        raise _RuleError(f"'allow' must be one of {allowed}, got {value!r}") from exc


def _catalog_rule(entry: Mapping[str, Any]) -> CatalogRule:
    _check_keys(entry, {"user_pattern", "catalog_pattern", "allow"}, {"allow"})
    return CatalogRule(
        access=_access_mode(entry["allow"]),
        user_regex=_pattern(entry, "user_pattern"),
        catalog_regex=_pattern(entry, "catalog_pattern"),
    )


def _schema_rule(entry: Mapping[str, Any]) -> SchemaRule:
    _check_keys(
        entry,
        {"user_pattern", "catalog_pattern", "schema_pattern", "allow"},
        {"allow"},
    )
    return SchemaRule(
        allow=_bool(entry, "allow"),
        user_regex=_pattern(entry, "user_pattern"),
        catalog_regex=_pattern(entry, "catalog_pattern"),
        schema_regex=_pattern(entry, "schema_pattern"),
    )


def _table_rule(entry: Mapping[str, Any]) -> TableRule:
    _check_keys(
        entry,
        {"user_pattern", "catalog_pattern", "schema_pattern", "table_pattern", "privileges"},
        {"privileges"},
    )
    raw = entry["privileges"]
    if not isinstance(raw, list):
        raise _RuleError("'privileges' must be a list")
    try:
        privileges = frozenset(TablePrivilege(p) for p in raw)
    except ValueError as exc:
        allowed = ", ".join(p.value for p in TablePrivilege)
        raise _RuleError(f"unknown privilege in {raw!r} (allowed: {allowed})") from exc
    return TableRule(
        privileges=privileges,
        user_regex=_pattern(entry, "user_pattern"),
        catalog_regex=_pattern(entry, "catalog_pattern"),
        schema_regex=_pattern(entry, "schema_pattern"),
        table_regex=_pattern(entry, "table_pattern"),
    )


def _session_property_rule(entry: Mapping[str, Any]) -> SessionPropertyRule:
    _check_keys(
        entry,
        {"user_pattern", "catalog_pattern", "property_pattern", "allow"},
        {"allow"},
    )
    return SessionPropertyRule(
        allow=_bool(entry, "allow"),
        user_regex=_pattern(entry, "user_pattern"),
        catalog_regex=_pattern(entry, "catalog_pattern"),
        property_regex=_pattern(entry, "property_pattern"),
    )


_SECTION_PARSERS: dict[str, Callable[[Mapping[str, Any]], Any]] = {
    "principals": _principal_rule,
    "catalogs": _catalog_rule,
    "schemas": _schema_rule,
    "tables": _table_rule,
    "session_properties": _session_property_rule,
}


def _parse_section(name: str, entries: Any) -> tuple:
    if not isinstance(entries, list):
        raise _RuleError(f"section '{name}' must be a list")
    parse = _SECTION_PARSERS[name]
    rules = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise _RuleError(f"{name}[{index}]: rule must be an object")
        try:
            rules.append(parse(entry))
        except _RuleError as exc:
            raise _RuleError(f"{name}[{index}]: {exc}") from exc
    return tuple(rules)


def parse_rules(document: Any) -> RuleSet:
    """
    Build a RuleSet from an already-decoded JSON document.

    Raises:
        ValueError: If the document does not describe a valid rule set.
    """
    if not isinstance(document, dict):
        raise _RuleError("top-level value must be an object")
    unknown = sorted(set(document) - set(_SECTION_PARSERS))
    if unknown:
        raise _RuleError(f"unknown sections {unknown}")

    sections = {
        name: _parse_section(name, document[name])
        for name in _SECTION_PARSERS
        if name in document
    }
    return RuleSet(**sections)


def load_rules(path: str | Path) -> RuleSet:
    """
    Read and parse a rule file.

    Raises:
        ConfigParseError: If the file cannot be read, is not valid JSON, or
                          does not describe a valid rule set.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigParseError(path, f"cannot read file: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise ConfigParseError(path, f"not valid UTF-8: {exc}") from exc

    try:
        document = json.loads(text)
    except ValueError as exc:
        raise ConfigParseError(path, f"malformed JSON: {exc}") from exc
    except RecursionError as exc:
        raise ConfigParseError(path, "malformed JSON: nesting too deep") from exc

    try:
        return parse_rules(document)
    except _RuleError as exc:
        raise ConfigParseError(path, str(exc)) from exc
