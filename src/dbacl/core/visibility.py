"""What an identity can see in a metadata source.

The access control engine never enumerates catalogs, schemas or tables on
its own; the platform hands it candidate sets. These helpers play the
platform's part for a MetadataSource (such as UnityCatalogAdapter): they
list the candidates, run them through the AccessControlManager's filters
and keep the source's ordering and metadata for display.
"""

from __future__ import annotations

from typing import Protocol

from dbacl.core.identity import CatalogSchemaName, Identity, TransactionId
from dbacl.core.manager import AccessControlManager
from dbacl.core.uc import UCCatalog, UCSchema, UCTable


class MetadataSource(Protocol):
    """Supplies the candidate universes that filters are applied to."""

    def list_catalogs(self) -> list[UCCatalog]:
        ...

    def list_schemas(self, catalog: str) -> list[UCSchema]:
        ...

    def list_tables(self, catalog: str, schema: str) -> list[UCTable]:
        ...


def visible_catalogs(
    manager: AccessControlManager,
    transaction_id: TransactionId,
    identity: Identity,
    source: MetadataSource,
) -> list[UCCatalog]:
    """Return the catalogs of `source` that `identity` may see."""
    catalogs = source.list_catalogs()
    allowed = manager.filter_catalogs(transaction_id, identity, {c.name for c in catalogs})
    return [c for c in catalogs if c.name in allowed]


def visible_schemas(
    manager: AccessControlManager,
    transaction_id: TransactionId,
    identity: Identity,
    source: MetadataSource,
    catalog: str,
) -> list[UCSchema]:
    """
    Return the schemas of `catalog` that `identity` may see.

    Raises:
        AccessDeniedError: If the identity may not list schemas of the catalog.
    """
    manager.check_can_show_schemas(transaction_id, identity, catalog)
    schemas = source.list_schemas(catalog=catalog)
    allowed = manager.filter_schemas(transaction_id, identity, catalog, {s.name for s in schemas})
    return [s for s in schemas if s.name in allowed]


def visible_tables(
    manager: AccessControlManager,
    transaction_id: TransactionId,
    identity: Identity,
    source: MetadataSource,
    schema: CatalogSchemaName,
) -> list[UCTable]:
    """
    Return the tables and views of `schema` that `identity` may see.

    Entries whose full name is not `catalog.schema.table` are skipped.

    Raises:
        AccessDeniedError: If the identity may not list tables of the schema.
    """
    manager.check_can_show_tables_metadata(transaction_id, identity, schema)
    tables = []
    for t in source.list_tables(catalog=schema.catalog, schema=schema.schema):
        try:
            tables.append((t, t.to_ref().schema_table_name))
        except ValueError:
            continue
    allowed = manager.filter_tables(
        transaction_id, identity, schema.catalog, {name for _, name in tables}
    )
    return [t for t, name in tables if name in allowed]
