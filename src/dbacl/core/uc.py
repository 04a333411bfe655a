"""Unity Catalog entities as seen by the metadata source.

These are plain immutable records, free of Databricks SDK types, that can be
turned into the resource addresses the access control engine works with.
"""

from __future__ import annotations

from dataclasses import dataclass

from dbacl.core.identity import CatalogSchemaTableName


@dataclass(frozen=True)
class UCCatalog:
    """A Unity Catalog catalog."""

    name: str
    owner: str | None = None


@dataclass(frozen=True)
class UCSchema:
    """A Unity Catalog schema."""

    catalog_name: str
    name: str
    owner: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.catalog_name}.{self.name}"


@dataclass(frozen=True)
class UCTable:
    """A Unity Catalog table or view."""

    full_name: str
    owner: str | None = None
    table_type: str | None = None

    def to_ref(self) -> CatalogSchemaTableName:
        return CatalogSchemaTableName.parse(self.full_name)
