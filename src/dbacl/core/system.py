"""System access control providers.

SystemAccessControl is the capability interface every provider implements:
one `check_can_*` method per guarded operation, which returns None to allow
and raises AccessDeniedError to deny, plus `filter_*` methods that return
the visible subset of a candidate set. The base implementation denies
everything and hides everything, so a provider only grants what it
explicitly overrides.

Providers are created by factories registered with the AccessControlManager
under a stable name.
"""

from __future__ import annotations

from typing import AbstractSet, Mapping, Protocol

from dbacl.core.errors import AccessDeniedError, ConfigurationError
from dbacl.core.identity import (
    CatalogSchemaName,
    CatalogSchemaTableName,
    GrantPrincipal,
    Identity,
    Privilege,
    SchemaTableName,
)


class SystemAccessControl:
    """Base provider: denies every check and filters every candidate out."""

    def check_can_set_user(self, principal: str | None, user: str) -> None:
        raise AccessDeniedError(
            "set user", user, message=f"Principal {principal} cannot become user {user}"
        )

    def check_can_access_catalog(self, identity: Identity, catalog: str) -> None:
        raise AccessDeniedError("access catalog", catalog)

    def filter_catalogs(self, identity: Identity, catalogs: AbstractSet[str]) -> set[str]:
        return set()

    def check_can_create_schema(self, identity: Identity, schema: CatalogSchemaName) -> None:
        raise AccessDeniedError("create schema", schema)

    def check_can_drop_schema(self, identity: Identity, schema: CatalogSchemaName) -> None:
        raise AccessDeniedError("drop schema", schema)

    def check_can_rename_schema(
        self, identity: Identity, schema: CatalogSchemaName, new_schema_name: str
    ) -> None:
        raise AccessDeniedError("rename schema", schema, f"to {new_schema_name}")

    def check_can_show_schemas(self, identity: Identity, catalog: str) -> None:
        raise AccessDeniedError("show schemas from", catalog)

    def filter_schemas(
        self, identity: Identity, catalog: str, schema_names: AbstractSet[str]
    ) -> set[str]:
        return set()

    def check_can_create_table(self, identity: Identity, table: CatalogSchemaTableName) -> None:
        raise AccessDeniedError("create table", table)

    def check_can_drop_table(self, identity: Identity, table: CatalogSchemaTableName) -> None:
        raise AccessDeniedError("drop table", table)

    def check_can_rename_table(
        self,
        identity: Identity,
        table: CatalogSchemaTableName,
        new_table: CatalogSchemaTableName,
    ) -> None:
        raise AccessDeniedError("rename table", table, f"to {new_table}")

    def check_can_show_tables_metadata(self, identity: Identity, schema: CatalogSchemaName) -> None:
        raise AccessDeniedError("show metadata of tables in", schema)

    def filter_tables(
        self, identity: Identity, catalog: str, table_names: AbstractSet[SchemaTableName]
    ) -> set[SchemaTableName]:
        return set()

    def check_can_add_column(self, identity: Identity, table: CatalogSchemaTableName) -> None:
        raise AccessDeniedError("add a column to table", table)

    def check_can_drop_column(self, identity: Identity, table: CatalogSchemaTableName) -> None:
        raise AccessDeniedError("drop a column from table", table)

    def check_can_rename_column(self, identity: Identity, table: CatalogSchemaTableName) -> None:
        raise AccessDeniedError("rename a column in table", table)

    def check_can_select_from_columns(
        self, identity: Identity, table: CatalogSchemaTableName, columns: AbstractSet[str]
    ) -> None:
        raise AccessDeniedError("select from columns", table, format_columns(columns))

    def check_can_insert_into_table(self, identity: Identity, table: CatalogSchemaTableName) -> None:
        raise AccessDeniedError("insert into table", table)

    def check_can_delete_from_table(self, identity: Identity, table: CatalogSchemaTableName) -> None:
        raise AccessDeniedError("delete from table", table)

    def check_can_create_view(self, identity: Identity, view: CatalogSchemaTableName) -> None:
        raise AccessDeniedError("create view", view)

    def check_can_drop_view(self, identity: Identity, view: CatalogSchemaTableName) -> None:
        raise AccessDeniedError("drop view", view)

    def check_can_create_view_with_select_from_columns(
        self, identity: Identity, table: CatalogSchemaTableName, columns: AbstractSet[str]
    ) -> None:
        raise AccessDeniedError("create view that selects from", table, format_columns(columns))

    def check_can_set_system_session_property(self, identity: Identity, property_name: str) -> None:
        raise AccessDeniedError("set system session property", property_name)

    def check_can_set_catalog_session_property(
        self, identity: Identity, catalog: str, property_name: str
    ) -> None:
        raise AccessDeniedError("set catalog session property", f"{catalog}.{property_name}")

    def check_can_grant_table_privilege(
        self,
        identity: Identity,
        privilege: Privilege,
        table: CatalogSchemaTableName,
        grantee: GrantPrincipal,
        with_grant_option: bool,
    ) -> None:
        raise AccessDeniedError(
            f"grant privilege {privilege.value} on", table, f"to {grantee}"
        )

    def check_can_revoke_table_privilege(
        self,
        identity: Identity,
        privilege: Privilege,
        table: CatalogSchemaTableName,
        revokee: GrantPrincipal,
        grant_option_for: bool,
    ) -> None:
        raise AccessDeniedError(
            f"revoke privilege {privilege.value} on", table, f"from {revokee}"
        )


def format_columns(columns: AbstractSet[str]) -> str:
    """Render a column set for denial messages."""
    return f"columns [{', '.join(sorted(columns))}]"


class SystemAccessControlFactory(Protocol):
    """Creates a provider from its configuration options."""

    name: str

    def create(self, config: Mapping[str, str]) -> SystemAccessControl:
        ...


class AllowAllSystemAccessControl(SystemAccessControl):
    """Provider that allows every operation and hides nothing."""

    NAME = "allow-all"

    def check_can_set_user(self, principal, user):
        return None

    def check_can_access_catalog(self, identity, catalog):
        return None

    def filter_catalogs(self, identity, catalogs):
        return set(catalogs)

    def check_can_create_schema(self, identity, schema):
        return None

    def check_can_drop_schema(self, identity, schema):
        return None

    def check_can_rename_schema(self, identity, schema, new_schema_name):
        return None

    def check_can_show_schemas(self, identity, catalog):
        return None

    def filter_schemas(self, identity, catalog, schema_names):
        return set(schema_names)

    def check_can_create_table(self, identity, table):
        return None

    def check_can_drop_table(self, identity, table):
        return None

    def check_can_rename_table(self, identity, table, new_table):
        return None

    def check_can_show_tables_metadata(self, identity, schema):
        return None

    def filter_tables(self, identity, catalog, table_names):
        return set(table_names)

    def check_can_add_column(self, identity, table):
        return None

    def check_can_drop_column(self, identity, table):
        return None

    def check_can_rename_column(self, identity, table):
        return None

    def check_can_select_from_columns(self, identity, table, columns):
        return None

    def check_can_insert_into_table(self, identity, table):
        return None

    def check_can_delete_from_table(self, identity, table):
        return None

    def check_can_create_view(self, identity, view):
        return None

    def check_can_drop_view(self, identity, view):
        return None

    def check_can_create_view_with_select_from_columns(self, identity, table, columns):
        return None

    def check_can_set_system_session_property(self, identity, property_name):
        return None

    def check_can_set_catalog_session_property(self, identity, catalog, property_name):
        return None

    def check_can_grant_table_privilege(self, identity, privilege, table, grantee, with_grant_option):
        return None

    def check_can_revoke_table_privilege(self, identity, privilege, table, revokee, grant_option_for):
        return None


class ReadOnlySystemAccessControl(SystemAccessControl):
    """Provider that allows reads and session setup but denies every change."""

    NAME = "read-only"

    def check_can_set_user(self, principal, user):
        return None

    def check_can_access_catalog(self, identity, catalog):
        return None

    def filter_catalogs(self, identity, catalogs):
        return set(catalogs)

    def check_can_show_schemas(self, identity, catalog):
        return None

    def filter_schemas(self, identity, catalog, schema_names):
        return set(schema_names)

    def check_can_show_tables_metadata(self, identity, schema):
        return None

    def filter_tables(self, identity, catalog, table_names):
        return set(table_names)

    def check_can_select_from_columns(self, identity, table, columns):
        return None

    def check_can_create_view_with_select_from_columns(self, identity, table, columns):
        return None

    def check_can_set_system_session_property(self, identity, property_name):
        return None

    def check_can_set_catalog_session_property(self, identity, catalog, property_name):
        return None


class _StaticFactory:
    """Factory for providers that take no configuration options."""

    def __init__(self, name: str, provider_type: type[SystemAccessControl]):
        self.name = name
        self._provider_type = provider_type

    def create(self, config: Mapping[str, str]) -> SystemAccessControl:
        if config:
            raise ConfigurationError(
                f"Access control '{self.name}' takes no options, got: {', '.join(sorted(config))}"
            )
        return self._provider_type()


ALLOW_ALL_FACTORY = _StaticFactory(AllowAllSystemAccessControl.NAME, AllowAllSystemAccessControl)
READ_ONLY_FACTORY = _StaticFactory(ReadOnlySystemAccessControl.NAME, ReadOnlySystemAccessControl)
