import inspect

import pytest

from dbacl.core.errors import ACCESS_DENIED_PREFIX, AccessDeniedError
from dbacl.core.file_based import FileBasedSystemAccessControl
from dbacl.core.identity import (
    CatalogSchemaName,
    CatalogSchemaTableName,
    GrantPrincipal,
    Identity,
    PrincipalType,
    Privilege,
    SchemaTableName,
)
from dbacl.core.system import (
    AllowAllSystemAccessControl,
    ReadOnlySystemAccessControl,
    SystemAccessControl,
)

ADMIN = Identity("admin")
ALICE = Identity("alice")
BOB = Identity("bob")
NON_ASCII = Identity("ƔƔƔ")

ALL_CATALOGS = {"open-to-all", "alice-catalog", "secret", "all-allowed", "ȀȀȀ", "unknown"}

GRANTEE = GrantPrincipal(PrincipalType.USER, "grantee")


def _table(full_name: str) -> CatalogSchemaTableName:
    return CatalogSchemaTableName.parse(full_name)


def _schema(full_name: str) -> CatalogSchemaName:
    return CatalogSchemaName.parse(full_name)


@pytest.fixture
def catalog_manager(new_manager):
    return new_manager("catalog.json")


@pytest.fixture
def table_manager(new_manager):
    return new_manager("table_rules.json")


# -- catalog rules ----------------------------------------------------------


def test_filter_catalogs_per_user(catalog_manager, tx):
    assert catalog_manager.filter_catalogs(tx, ADMIN, ALL_CATALOGS) == ALL_CATALOGS
    assert catalog_manager.filter_catalogs(tx, ALICE, ALL_CATALOGS) == {
        "open-to-all",
        "alice-catalog",
        "all-allowed",
    }
    assert catalog_manager.filter_catalogs(tx, BOB, ALL_CATALOGS) == {"open-to-all", "all-allowed"}
    assert catalog_manager.filter_catalogs(tx, NON_ASCII, ALL_CATALOGS) == {
        "open-to-all",
        "all-allowed",
        "ȀȀȀ",
    }


def test_access_catalog(catalog_manager, tx):
    catalog_manager.check_can_access_catalog(tx, ALICE, "alice-catalog")
    catalog_manager.check_can_access_catalog(tx, BOB, "open-to-all")
    catalog_manager.check_can_access_catalog(tx, ADMIN, "secret")

    with pytest.raises(AccessDeniedError, match="Cannot access catalog alice-catalog"):
        catalog_manager.check_can_access_catalog(tx, BOB, "alice-catalog")
    with pytest.raises(AccessDeniedError):
        catalog_manager.check_can_access_catalog(tx, ALICE, "secret")


def test_schema_operations(catalog_manager, tx):
    schema = _schema("alice-catalog.schema")

    catalog_manager.check_can_create_schema(tx, ALICE, schema)
    catalog_manager.check_can_drop_schema(tx, ALICE, schema)
    catalog_manager.check_can_rename_schema(tx, ALICE, schema, "new_schema")
    catalog_manager.check_can_show_schemas(tx, ALICE, "alice-catalog")

    with pytest.raises(AccessDeniedError):
        catalog_manager.check_can_create_schema(tx, BOB, schema)
    with pytest.raises(AccessDeniedError):
        catalog_manager.check_can_drop_schema(tx, BOB, schema)
    with pytest.raises(AccessDeniedError, match="to new_schema"):
        catalog_manager.check_can_rename_schema(tx, BOB, schema, "new_schema")
    with pytest.raises(AccessDeniedError):
        catalog_manager.check_can_show_schemas(tx, BOB, "alice-catalog")


def test_schema_changes_need_full_catalog_access(catalog_manager, tx):
    catalog_manager.check_can_show_schemas(tx, BOB, "open-to-all")

    with pytest.raises(AccessDeniedError):
        catalog_manager.check_can_create_schema(tx, BOB, _schema("open-to-all.schema"))


def test_table_operations(catalog_manager, tx):
    table = _table("alice-catalog.schema.table")
    new_table = _table("alice-catalog.schema.new_table")

    catalog_manager.check_can_create_table(tx, ALICE, table)
    catalog_manager.check_can_drop_table(tx, ALICE, table)
    catalog_manager.check_can_rename_table(tx, ALICE, table, new_table)
    catalog_manager.check_can_add_column(tx, ALICE, table)
    catalog_manager.check_can_drop_column(tx, ALICE, table)
    catalog_manager.check_can_rename_column(tx, ALICE, table)
    catalog_manager.check_can_select_from_columns(tx, ALICE, table, set())
    catalog_manager.check_can_insert_into_table(tx, ALICE, table)
    catalog_manager.check_can_delete_from_table(tx, ALICE, table)
    catalog_manager.check_can_show_tables_metadata(tx, ALICE, table.schema_name)

    denied = [
        lambda: catalog_manager.check_can_create_table(tx, BOB, table),
        lambda: catalog_manager.check_can_drop_table(tx, BOB, table),
        lambda: catalog_manager.check_can_rename_table(tx, BOB, table, new_table),
        lambda: catalog_manager.check_can_add_column(tx, BOB, table),
        lambda: catalog_manager.check_can_drop_column(tx, BOB, table),
        lambda: catalog_manager.check_can_rename_column(tx, BOB, table),
        lambda: catalog_manager.check_can_select_from_columns(tx, BOB, table, set()),
        lambda: catalog_manager.check_can_insert_into_table(tx, BOB, table),
        lambda: catalog_manager.check_can_delete_from_table(tx, BOB, table),
        lambda: catalog_manager.check_can_show_tables_metadata(tx, BOB, table.schema_name),
    ]
    for check in denied:
        with pytest.raises(AccessDeniedError):
            check()


def test_rename_table_checks_both_catalogs(catalog_manager, tx):
    with pytest.raises(AccessDeniedError, match="to alice-catalog.schema.table"):
        catalog_manager.check_can_rename_table(
            tx, BOB, _table("all-allowed.schema.table"), _table("alice-catalog.schema.table")
        )
    with pytest.raises(AccessDeniedError):
        catalog_manager.check_can_rename_table(
            tx, ALICE, _table("alice-catalog.schema.table"), _table("open-to-all.schema.table")
        )


def test_read_only_catalog_allows_reads_only(catalog_manager, tx):
    table = _table("open-to-all.schema.table")

    catalog_manager.check_can_select_from_columns(tx, BOB, table, {"a"})
    catalog_manager.check_can_create_view_with_select_from_columns(tx, BOB, table, {"a"})
    with pytest.raises(AccessDeniedError):
        catalog_manager.check_can_insert_into_table(tx, BOB, table)
    with pytest.raises(AccessDeniedError):
        catalog_manager.check_can_delete_from_table(tx, BOB, table)
    with pytest.raises(AccessDeniedError):
        catalog_manager.check_can_create_table(tx, BOB, table)


def test_view_operations(catalog_manager, tx):
    table = _table("alice-catalog.schema.table")
    view = _table("alice-catalog.schema.view")

    catalog_manager.check_can_create_view(tx, ALICE, view)
    catalog_manager.check_can_drop_view(tx, ALICE, view)
    catalog_manager.check_can_select_from_columns(tx, ALICE, table, set())
    catalog_manager.check_can_create_view_with_select_from_columns(tx, ALICE, table, set())
    catalog_manager.check_can_create_view_with_select_from_columns(tx, ALICE, view, set())

    with pytest.raises(AccessDeniedError):
        catalog_manager.check_can_create_view(tx, BOB, view)
    with pytest.raises(AccessDeniedError):
        catalog_manager.check_can_drop_view(tx, BOB, view)
    with pytest.raises(AccessDeniedError):
        catalog_manager.check_can_create_view_with_select_from_columns(tx, BOB, table, set())
    with pytest.raises(AccessDeniedError):
        catalog_manager.check_can_create_view_with_select_from_columns(tx, BOB, view, set())


def test_session_properties_without_section(catalog_manager, tx):
    catalog_manager.check_can_set_system_session_property(tx, BOB, "any_property")
    catalog_manager.check_can_set_catalog_session_property(tx, ALICE, "alice-catalog", "property")

    with pytest.raises(AccessDeniedError, match="alice-catalog.property"):
        catalog_manager.check_can_set_catalog_session_property(tx, BOB, "alice-catalog", "property")


def test_grant_and_revoke(catalog_manager, tx):
    table = _table("alice-catalog.schema.table")

    for privilege in Privilege:
        catalog_manager.check_can_grant_table_privilege(tx, ALICE, privilege, table, GRANTEE, True)
        catalog_manager.check_can_revoke_table_privilege(tx, ALICE, privilege, table, GRANTEE, True)

    with pytest.raises(AccessDeniedError, match="to user grantee"):
        catalog_manager.check_can_grant_table_privilege(
            tx, BOB, Privilege.SELECT, table, GRANTEE, False
        )
    with pytest.raises(AccessDeniedError, match="from user grantee"):
        catalog_manager.check_can_revoke_table_privilege(
            tx, BOB, Privilege.SELECT, table, GRANTEE, False
        )


def test_denial_messages(catalog_manager, tx):
    with pytest.raises(AccessDeniedError) as exc_info:
        catalog_manager.check_can_select_from_columns(
            tx, BOB, _table("secret.s.t"), {"b", "a"}
        )

    message = str(exc_info.value)
    assert message.startswith(ACCESS_DENIED_PREFIX)
    assert message == "Access Denied: Cannot select from columns secret.s.t: columns [a, b]"
    assert exc_info.value.operation == "select from columns"
    assert exc_info.value.resource == "secret.s.t"


# -- schema, table and session property rules -------------------------------


def test_schema_rules(table_manager, tx):
    table_manager.check_can_create_schema(tx, ALICE, _schema("sales.alice_new"))
    table_manager.check_can_create_schema(tx, BOB, _schema("sales.staging"))
    table_manager.check_can_rename_schema(tx, BOB, _schema("sales.staging"), "public")

    with pytest.raises(AccessDeniedError):
        table_manager.check_can_create_schema(tx, BOB, _schema("sales.alice_new"))
    with pytest.raises(AccessDeniedError):
        table_manager.check_can_drop_schema(tx, BOB, _schema("sales.private"))
    with pytest.raises(AccessDeniedError):
        table_manager.check_can_rename_schema(tx, BOB, _schema("sales.public"), "private")
    with pytest.raises(AccessDeniedError):
        table_manager.check_can_create_schema(tx, BOB, _schema("reference.public"))


def test_filter_schemas(table_manager, tx):
    names = {"public", "private", "staging", "alice_x", "other"}

    assert table_manager.filter_schemas(tx, BOB, "sales", names) == {"public", "staging"}
    assert table_manager.filter_schemas(tx, ALICE, "sales", names) == {
        "public",
        "staging",
        "alice_x",
    }
    assert table_manager.filter_schemas(tx, ADMIN, "hr", names) == names
    assert table_manager.filter_schemas(tx, BOB, "hr", names) == set()


def test_show_tables_metadata_uses_schema_rules(table_manager, tx):
    table_manager.check_can_show_tables_metadata(tx, BOB, _schema("sales.public"))
    table_manager.check_can_show_tables_metadata(tx, BOB, _schema("reference.public"))

    with pytest.raises(AccessDeniedError):
        table_manager.check_can_show_tables_metadata(tx, BOB, _schema("sales.private"))


def test_first_matching_table_rule_wins(table_manager, tx):
    orders = _table("sales.public.orders")

    table_manager.check_can_select_from_columns(tx, BOB, orders, {"id"})
    # A later rule grants INSERT on the same table but is never reached.
    with pytest.raises(AccessDeniedError):
        table_manager.check_can_insert_into_table(tx, BOB, orders)
    with pytest.raises(AccessDeniedError):
        table_manager.check_can_drop_table(tx, BOB, orders)


def test_empty_privilege_list_denies(table_manager, tx):
    secrets = _table("sales.public.secrets")

    with pytest.raises(AccessDeniedError):
        table_manager.check_can_select_from_columns(tx, BOB, secrets, set())
    table_manager.check_can_select_from_columns(tx, ADMIN, secrets, set())


def test_catalog_access_caps_table_privileges(table_manager, tx):
    table = _table("reference.lookup.codes")

    table_manager.check_can_select_from_columns(tx, BOB, table, {"code"})
    with pytest.raises(AccessDeniedError):
        table_manager.check_can_insert_into_table(tx, BOB, table)


def test_unmatched_table_is_denied(table_manager, tx):
    with pytest.raises(AccessDeniedError):
        table_manager.check_can_select_from_columns(tx, BOB, _table("sales.private.x"), set())
    with pytest.raises(AccessDeniedError):
        table_manager.check_can_select_from_columns(tx, BOB, _table("hr.public.x"), set())


def test_table_owner_operations(table_manager, tx):
    table = _table("sales.alice_work.events")

    table_manager.check_can_create_table(tx, ALICE, table)
    table_manager.check_can_insert_into_table(tx, ALICE, table)
    table_manager.check_can_delete_from_table(tx, ALICE, table)
    table_manager.check_can_create_view(tx, ALICE, _table("sales.alice_work.v"))
    table_manager.check_can_rename_table(tx, ALICE, table, _table("sales.alice_work.events2"))

    with pytest.raises(AccessDeniedError):
        table_manager.check_can_rename_table(tx, ALICE, table, _table("sales.public.events"))
    with pytest.raises(AccessDeniedError):
        table_manager.check_can_create_table(tx, BOB, table)


def test_grant_select_privilege(table_manager, tx):
    orders = _table("sales.public.orders")

    table_manager.check_can_grant_table_privilege(tx, BOB, Privilege.SELECT, orders, GRANTEE, False)
    table_manager.check_can_revoke_table_privilege(tx, BOB, Privilege.SELECT, orders, GRANTEE, False)

    with pytest.raises(AccessDeniedError, match="grant privilege INSERT"):
        table_manager.check_can_grant_table_privilege(
            tx, BOB, Privilege.INSERT, orders, GRANTEE, False
        )
    with pytest.raises(AccessDeniedError):
        table_manager.check_can_grant_table_privilege(
            tx, BOB, Privilege.SELECT, _table("sales.public.other"), GRANTEE, False
        )


def test_filter_tables(table_manager, tx):
    names = {
        SchemaTableName("public", "orders"),
        SchemaTableName("public", "secrets"),
        SchemaTableName("public", "other"),
        SchemaTableName("private", "x"),
        SchemaTableName("alice_a", "t"),
    }

    assert table_manager.filter_tables(tx, BOB, "sales", names) == {
        SchemaTableName("public", "orders"),
        SchemaTableName("public", "other"),
    }
    assert SchemaTableName("alice_a", "t") in table_manager.filter_tables(tx, ALICE, "sales", names)
    assert table_manager.filter_tables(tx, ADMIN, "sales", names) == names
    assert table_manager.filter_tables(tx, BOB, "hr", names) == set()


def test_catalog_session_property_rules(table_manager, tx):
    table_manager.check_can_set_catalog_session_property(tx, BOB, "sales", "join_strategy")
    table_manager.check_can_set_catalog_session_property(tx, ADMIN, "hr", "query_max_memory")
    table_manager.check_can_set_system_session_property(tx, BOB, "query_max_memory")

    with pytest.raises(AccessDeniedError):
        table_manager.check_can_set_catalog_session_property(tx, BOB, "sales", "query_max_memory")
    with pytest.raises(AccessDeniedError):
        table_manager.check_can_set_catalog_session_property(tx, BOB, "reference", "join_strategy")
    with pytest.raises(AccessDeniedError):
        table_manager.check_can_set_catalog_session_property(tx, BOB, "hr", "join_strategy")


# -- absent and empty sections ----------------------------------------------


def test_empty_rule_file_allows_everything(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text("{}")
    provider = FileBasedSystemAccessControl.from_file(path)
    table = _table("any.schema.table")

    provider.check_can_set_user(None, "alice")
    provider.check_can_access_catalog(BOB, "any")
    provider.check_can_create_schema(BOB, table.schema_name)
    provider.check_can_drop_table(BOB, table)
    provider.check_can_insert_into_table(BOB, table)
    provider.check_can_set_catalog_session_property(BOB, "any", "property")
    provider.check_can_grant_table_privilege(BOB, Privilege.DELETE, table, GRANTEE, True)

    assert provider.filter_catalogs(BOB, ALL_CATALOGS) == ALL_CATALOGS
    assert provider.filter_schemas(BOB, "any", {"a", "b"}) == {"a", "b"}
    assert provider.filter_tables(BOB, "any", {SchemaTableName("a", "b")}) == {
        SchemaTableName("a", "b")
    }


def test_empty_sections_deny_everything(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text('{"catalogs": [], "principals": []}')
    provider = FileBasedSystemAccessControl.from_file(path)

    assert provider.filter_catalogs(ADMIN, ALL_CATALOGS) == set()
    with pytest.raises(AccessDeniedError):
        provider.check_can_access_catalog(ADMIN, "any")
    with pytest.raises(AccessDeniedError):
        provider.check_can_set_user("admin", "admin")


# -- provider surface -------------------------------------------------------


def _public_methods(cls) -> set[str]:
    return {
        name
        for name, value in vars(cls).items()
        if not name.startswith("_") and inspect.isfunction(value)
    }


@pytest.mark.parametrize(
    "provider_type",
    [FileBasedSystemAccessControl, AllowAllSystemAccessControl],
)
def test_provider_overrides_every_operation(provider_type):
    missing = _public_methods(SystemAccessControl) - _public_methods(provider_type)

    assert missing == set()


def test_read_only_provider_denies_changes():
    provider = ReadOnlySystemAccessControl()
    table = _table("c.s.t")

    provider.check_can_access_catalog(BOB, "c")
    provider.check_can_select_from_columns(BOB, table, {"a"})
    assert provider.filter_catalogs(BOB, {"c"}) == {"c"}
    with pytest.raises(AccessDeniedError):
        provider.check_can_insert_into_table(BOB, table)
    with pytest.raises(AccessDeniedError):
        provider.check_can_create_schema(BOB, table.schema_name)
