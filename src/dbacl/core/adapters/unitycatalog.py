from __future__ import annotations

from typing import Any

from databricks.sdk import WorkspaceClient

from dbacl.core.uc import UCCatalog, UCSchema, UCTable


def _enum_value(value: Any) -> str | None:
    """SDK enums (e.g. TableType) expose `.value`; older SDKs return plain strings."""
    if value is None:
        return None
    return getattr(value, "value", str(value))


class UnityCatalogAdapter:
    """
    Read-only metadata source backed by the Databricks Unity Catalog APIs.

    Only enumerates. Every listing is the candidate set that the access
    control filters are applied to, so entries without a usable name are
    dropped here rather than passed on.
    """

    def __init__(self, client: WorkspaceClient) -> None:
        self.client = client

    def list_catalogs(self) -> list[UCCatalog]:
        return [
            UCCatalog(name=info.name, owner=getattr(info, "owner", None))
            for info in self.client.catalogs.list()
            if getattr(info, "name", None)
        ]

    def list_schemas(self, catalog: str) -> list[UCSchema]:
        schemas: list[UCSchema] = []
        for info in self.client.schemas.list(catalog_name=catalog):
            # Some SDK versions only populate full_name
            name = getattr(info, "name", None) or (getattr(info, "full_name", None) or "").rpartition(".")[2]
            if name:
                schemas.append(
                    UCSchema(
                        catalog_name=getattr(info, "catalog_name", None) or catalog,
                        name=name,
                        owner=getattr(info, "owner", None),
                    )
                )
        return schemas

    def list_tables(self, catalog: str, schema: str) -> list[UCTable]:
        """List tables and views of `catalog.schema` (the SDK returns both)."""
        return [
            UCTable(
                full_name=info.full_name,
                owner=getattr(info, "owner", None),
                table_type=_enum_value(getattr(info, "table_type", None)),
            )
            for info in self.client.tables.list(catalog_name=catalog, schema_name=schema)
            if getattr(info, "full_name", None)
        ]
