"""Identity and resource address models.

These models describe who is asking (Identity) and what is being asked
about (catalog, schema, table). They are immutable, hashable value types
so they can be placed in sets and shared freely across threads.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class Identity:
    """
    The acting caller of an operation.

    Attributes:
        user: Claimed username. Case-sensitive and never interpreted
              as a pattern.
        principal: Authenticated principal string supplied by the
                   transport (e.g. a Kerberos principal), or None when no
                   principal-level authentication took place.
    """

    user: str
    principal: str | None = None

    def __post_init__(self) -> None:
        if not self.user:
            raise ValueError("Identity user must be a non-empty string.")


@dataclass(frozen=True)
class CatalogSchemaName:
    """A schema address: (catalog, schema)."""

    catalog: str
    schema: str

    @classmethod
    def parse(cls, full_name: str) -> CatalogSchemaName:
        """Split `catalog.schema` into a CatalogSchemaName."""
        parts = full_name.strip().split(".")
        if len(parts) != 2 or not all(parts):
            raise ValueError("Schema must be in the form `catalog.schema`.")
        return cls(*parts)

    def __str__(self) -> str:
        return f"{self.catalog}.{self.schema}"


@dataclass(frozen=True)
class SchemaTableName:
    """A table address relative to a catalog: (schema, table)."""

    schema: str
    table: str

    def __str__(self) -> str:
        return f"{self.schema}.{self.table}"


@dataclass(frozen=True)
class CatalogSchemaTableName:
    """A fully qualified table or view address: (catalog, schema, table)."""

    catalog: str
    schema: str
    table: str

    @classmethod
    def parse(cls, full_name: str) -> CatalogSchemaTableName:
        """Split `catalog.schema.table` into a CatalogSchemaTableName."""
        parts = full_name.strip().split(".")
        if len(parts) != 3 or not all(parts):
            raise ValueError("Table must be in the form `catalog.schema.table`.")
        return cls(*parts)

    @property
    def schema_name(self) -> CatalogSchemaName:
        return CatalogSchemaName(self.catalog, self.schema)

    @property
    def schema_table_name(self) -> SchemaTableName:
        return SchemaTableName(self.schema, self.table)

    def __str__(self) -> str:
        return f"{self.catalog}.{self.schema}.{self.table}"


class PrincipalType(str, Enum):
    """Kind of principal a privilege is granted to."""

    USER = "USER"
    ROLE = "ROLE"


@dataclass(frozen=True)
class GrantPrincipal:
    """Grantee or revokee of a table privilege."""

    type: PrincipalType
    name: str

    def __str__(self) -> str:
        return f"{self.type.value.lower()} {self.name}"


class Privilege(str, Enum):
    """Table privileges that can be granted or revoked with SQL."""

    SELECT = "SELECT"
    INSERT = "INSERT"
    DELETE = "DELETE"
    UPDATE = "UPDATE"


@dataclass(frozen=True)
class TransactionId:
    """
    Opaque correlation token for the query transaction a call runs in.

    It carries no authorization-relevant state and is only used to tie
    log lines to the request that produced them.
    """

    value: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def create(cls) -> TransactionId:
        return cls()

    def __str__(self) -> str:
        return self.value
