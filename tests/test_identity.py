import pytest

from dbacl.core.identity import (
    CatalogSchemaName,
    CatalogSchemaTableName,
    GrantPrincipal,
    Identity,
    PrincipalType,
    SchemaTableName,
    TransactionId,
)


@pytest.mark.parametrize("value", ["main", "main.sales.tmp", "main.", ".sales", ""])
def test_parse_schema_rejects_invalid_input(value: str):
    with pytest.raises(ValueError, match="catalog.schema"):
        CatalogSchemaName.parse(value)


def test_parse_schema_accepts_valid_input():
    assert CatalogSchemaName.parse(" main.sales ") == CatalogSchemaName("main", "sales")


@pytest.mark.parametrize("value", ["main.sales", "main..orders", "a.b.c.d"])
def test_parse_table_rejects_invalid_input(value: str):
    with pytest.raises(ValueError, match="catalog.schema.table"):
        CatalogSchemaTableName.parse(value)


def test_resource_names_render_dotted():
    table = CatalogSchemaTableName("alice-catalog", "schema", "table")

    assert str(CatalogSchemaName("alice-catalog", "schema")) == "alice-catalog.schema"
    assert str(table) == "alice-catalog.schema.table"
    assert table.schema_name == CatalogSchemaName("alice-catalog", "schema")
    assert table.schema_table_name == SchemaTableName("schema", "table")


def test_resource_names_use_structural_equality():
    assert {CatalogSchemaName("c", "s"), CatalogSchemaName("c", "s")} == {
        CatalogSchemaName("c", "s")
    }
    assert CatalogSchemaName("c", "s") != CatalogSchemaName("C", "s")


def test_identity_requires_user():
    with pytest.raises(ValueError):
        Identity("")


def test_grant_principal_str():
    assert str(GrantPrincipal(PrincipalType.USER, "grantee")) == "user grantee"


def test_transaction_ids_are_unique():
    assert TransactionId.create() != TransactionId.create()
