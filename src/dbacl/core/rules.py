"""Access control rule types.

Each rule pairs patterns over the caller and the resource with a decision.
Rules are pure, immutable objects: `match` returns the rule's decision when
every pattern matches, or None when the rule does not apply, so an ordered
list of rules can be scanned for the first applicable entry.

All patterns are Python regular expressions applied with `fullmatch`, so a
pattern never matches part of a name.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterable, TypeVar

from dbacl.core.identity import CatalogSchemaName, CatalogSchemaTableName

if TYPE_CHECKING:
    from dbacl.core.principals import PrincipalRule

T = TypeVar("T")
R = TypeVar("R")

ANY = re.compile(".*")


class AccessMode(str, Enum):
    """
    Catalog-level permission, ordered NONE < READ_ONLY < ALL.

    Values are spelled the way they appear in rule files.
    """

    NONE = "none"
    READ_ONLY = "read-only"
    ALL = "all"

    @property
    def level(self) -> int:
        return _ACCESS_LEVELS[self]

    def implies(self, required: AccessMode) -> bool:
        """Return True if this mode grants at least `required`."""
        return self.level >= required.level


_ACCESS_LEVELS = {AccessMode.NONE: 0, AccessMode.READ_ONLY: 1, AccessMode.ALL: 2}


class TablePrivilege(str, Enum):
    """Privileges a table rule can grant on matching tables and views."""

    SELECT = "SELECT"
    INSERT = "INSERT"
    DELETE = "DELETE"
    OWNERSHIP = "OWNERSHIP"
    GRANT_SELECT = "GRANT_SELECT"


@dataclass(frozen=True)
class CatalogRule:
    """Grants an AccessMode on catalogs matching `catalog_regex`."""

    access: AccessMode
    user_regex: re.Pattern[str] = ANY
    catalog_regex: re.Pattern[str] = ANY

    def match(self, user: str, catalog: str) -> AccessMode | None:
        if self.user_regex.fullmatch(user) and self.catalog_regex.fullmatch(catalog):
            return self.access
        return None


@dataclass(frozen=True)
class SchemaRule:
    """Allows or denies schema visibility and ownership operations."""

    allow: bool
    user_regex: re.Pattern[str] = ANY
    catalog_regex: re.Pattern[str] = ANY
    schema_regex: re.Pattern[str] = ANY

    def match(self, user: str, schema: CatalogSchemaName) -> bool | None:
        if (
            self.user_regex.fullmatch(user)
            and self.catalog_regex.fullmatch(schema.catalog)
            and self.schema_regex.fullmatch(schema.schema)
        ):
            return self.allow
        return None


@dataclass(frozen=True)
class TableRule:
    """Grants a set of privileges on matching tables and views."""

    privileges: frozenset[TablePrivilege]
    user_regex: re.Pattern[str] = ANY
    catalog_regex: re.Pattern[str] = ANY
    schema_regex: re.Pattern[str] = ANY
    table_regex: re.Pattern[str] = ANY

    def match(
        self, user: str, table: CatalogSchemaTableName
    ) -> frozenset[TablePrivilege] | None:
        if (
            self.user_regex.fullmatch(user)
            and self.catalog_regex.fullmatch(table.catalog)
            and self.schema_regex.fullmatch(table.schema)
            and self.table_regex.fullmatch(table.table)
        ):
            return self.privileges
        return None


@dataclass(frozen=True)
class SessionPropertyRule:
    """Allows or denies setting matching catalog session properties."""

    allow: bool
    user_regex: re.Pattern[str] = ANY
    catalog_regex: re.Pattern[str] = ANY
    property_regex: re.Pattern[str] = ANY

    def match(self, user: str, catalog: str, property_name: str) -> bool | None:
        if (
            self.user_regex.fullmatch(user)
            and self.catalog_regex.fullmatch(catalog)
            and self.property_regex.fullmatch(property_name)
        ):
            return self.allow
        return None


@dataclass(frozen=True)
class RuleSet:
    """
    Immutable snapshot of every rule section loaded from one rule file.

    A section set to None was absent from the file, which leaves that
    resource class unrestricted. A present but empty section denies
    everything in its class.
    """

    principals: tuple[PrincipalRule, ...] | None = None
    catalogs: tuple[CatalogRule, ...] | None = None
    schemas: tuple[SchemaRule, ...] | None = None
    tables: tuple[TableRule, ...] | None = None
    session_properties: tuple[SessionPropertyRule, ...] | None = None

    def sections(self) -> dict[str, int | None]:
        """Return rule counts per section (None for absent sections)."""
        return {
            "principals": _count(self.principals),
            "catalogs": _count(self.catalogs),
            "schemas": _count(self.schemas),
            "tables": _count(self.tables),
            "session_properties": _count(self.session_properties),
        }


def _count(rules: tuple | None) -> int | None:
    return None if rules is None else len(rules)


def first_match(rules: Iterable[T], match: Callable[[T], R | None]) -> R | None:
    """Return the decision of the first rule for which `match` is not None."""
    for rule in rules:
        decision = match(rule)
        if decision is not None:
            return decision
    return None
