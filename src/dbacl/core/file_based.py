"""Rule file based access control.

FileBasedSystemAccessControl evaluates every request against the RuleSet
currently held by a ReloadingRuleSet. For each resource class the decision
is made in the same way:

1. If the rule section for the class is absent, the request is allowed.
2. Otherwise the first rule whose patterns all match decides.
3. If no rule matches, the request is denied.

Catalog rules are consulted first for every catalog-scoped operation:
visibility and reads need READ_ONLY, changes need ALL. Schema, table and
session property rules then refine the decision inside the catalog.

Each call reads a single RuleSet snapshot, so a concurrent reload never
mixes rules from two files within one decision.
"""

from __future__ import annotations

import functools
from pathlib import Path
from typing import AbstractSet, Callable, Mapping

from dbacl.core.config import FileBasedAccessControlConfig
from dbacl.core.errors import AccessDeniedError
from dbacl.core.identity import (
    CatalogSchemaName,
    CatalogSchemaTableName,
    GrantPrincipal,
    Identity,
    Privilege,
    SchemaTableName,
)
from dbacl.core.principals import PrincipalUserMatcher
from dbacl.core.reloading import ReloadingRuleSet
from dbacl.core.rules import AccessMode, RuleSet, TablePrivilege, first_match
from dbacl.core.rules_file import load_rules
from dbacl.core.system import SystemAccessControl, format_columns


def _can_access_catalog(
    rules: RuleSet, identity: Identity, catalog: str, required: AccessMode
) -> bool:
    if rules.catalogs is None:
        return True
    mode = first_match(rules.catalogs, lambda r: r.match(identity.user, catalog))
    return mode is not None and mode.implies(required)


def _can_access_schema(rules: RuleSet, identity: Identity, schema: CatalogSchemaName) -> bool:
    if rules.schemas is None:
        return True
    return bool(first_match(rules.schemas, lambda r: r.match(identity.user, schema)))


def _table_privileges(
    rules: RuleSet, identity: Identity, table: CatalogSchemaTableName
) -> AbstractSet[TablePrivilege]:
    if rules.tables is None:
        return frozenset(TablePrivilege)
    return first_match(rules.tables, lambda r: r.match(identity.user, table)) or frozenset()


def _can_set_session_property(
    rules: RuleSet, identity: Identity, catalog: str, property_name: str
) -> bool:
    if rules.session_properties is None:
        return True
    return bool(
        first_match(
            rules.session_properties,
            lambda r: r.match(identity.user, catalog, property_name),
        )
    )


class FileBasedSystemAccessControl(SystemAccessControl):
    """Provider that authorizes requests against a JSON rule file."""

    NAME = "file"

    def __init__(self, rules: ReloadingRuleSet):
        self.rules = rules

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        refresh_period: float | None = None,
        *,
        clock: Callable[[], float] | None = None,
    ) -> FileBasedSystemAccessControl:
        """Create a provider backed by `path`, loading it immediately."""
        loader = functools.partial(load_rules, path)
        if clock is None:
            return cls(ReloadingRuleSet(loader, refresh_period))
        return cls(ReloadingRuleSet(loader, refresh_period, clock=clock))

    def _check_catalog(
        self,
        rules: RuleSet,
        identity: Identity,
        catalog: str,
        required: AccessMode,
        operation: str,
        resource: object,
        detail: str | None = None,
    ) -> None:
        if not _can_access_catalog(rules, identity, catalog, required):
            raise AccessDeniedError(operation, resource, detail)

    def _check_schema(
        self,
        identity: Identity,
        schema: CatalogSchemaName,
        operation: str,
        *,
        also: CatalogSchemaName | None = None,
        detail: str | None = None,
    ) -> None:
        rules = self.rules.get()
        self._check_catalog(rules, identity, schema.catalog, AccessMode.ALL, operation, schema, detail)
        for target in (schema, also):
            if target is not None and not _can_access_schema(rules, identity, target):
                raise AccessDeniedError(operation, schema, detail)

    def _check_table(
        self,
        identity: Identity,
        table: CatalogSchemaTableName,
        required: AccessMode,
        privileges: AbstractSet[TablePrivilege],
        operation: str,
        detail: str | None = None,
    ) -> None:
        """Deny unless the catalog grants `required` and the table rule grants any of `privileges`."""
        rules = self.rules.get()
        self._check_catalog(rules, identity, table.catalog, required, operation, table, detail)
        if not privileges & _table_privileges(rules, identity, table):
            raise AccessDeniedError(operation, table, detail)

    def _check_owner(self, identity: Identity, table: CatalogSchemaTableName, operation: str) -> None:
        self._check_table(identity, table, AccessMode.ALL, {TablePrivilege.OWNERSHIP}, operation)

    def check_can_set_user(self, principal: str | None, user: str) -> None:
        matcher = PrincipalUserMatcher(self.rules.get().principals)
        if not matcher.validate(user, principal):
            raise AccessDeniedError(
                "set user", user, message=f"Principal {principal} cannot become user {user}"
            )

    def check_can_access_catalog(self, identity: Identity, catalog: str) -> None:
        rules = self.rules.get()
        self._check_catalog(rules, identity, catalog, AccessMode.READ_ONLY, "access catalog", catalog)

    def filter_catalogs(self, identity: Identity, catalogs: AbstractSet[str]) -> set[str]:
        rules = self.rules.get()
        return {
            c for c in catalogs if _can_access_catalog(rules, identity, c, AccessMode.READ_ONLY)
        }

    def check_can_create_schema(self, identity: Identity, schema: CatalogSchemaName) -> None:
        self._check_schema(identity, schema, "create schema")

    def check_can_drop_schema(self, identity: Identity, schema: CatalogSchemaName) -> None:
        self._check_schema(identity, schema, "drop schema")

    def check_can_rename_schema(
        self, identity: Identity, schema: CatalogSchemaName, new_schema_name: str
    ) -> None:
        self._check_schema(
            identity,
            schema,
            "rename schema",
            also=CatalogSchemaName(schema.catalog, new_schema_name),
            detail=f"to {new_schema_name}",
        )

    def check_can_show_schemas(self, identity: Identity, catalog: str) -> None:
        rules = self.rules.get()
        self._check_catalog(rules, identity, catalog, AccessMode.READ_ONLY, "show schemas from", catalog)

    def filter_schemas(
        self, identity: Identity, catalog: str, schema_names: AbstractSet[str]
    ) -> set[str]:
        rules = self.rules.get()
        if not _can_access_catalog(rules, identity, catalog, AccessMode.READ_ONLY):
            return set()
        return {
            s
            for s in schema_names
            if _can_access_schema(rules, identity, CatalogSchemaName(catalog, s))
        }

    def check_can_create_table(self, identity: Identity, table: CatalogSchemaTableName) -> None:
        self._check_owner(identity, table, "create table")

    def check_can_drop_table(self, identity: Identity, table: CatalogSchemaTableName) -> None:
        self._check_owner(identity, table, "drop table")

    def check_can_rename_table(
        self,
        identity: Identity,
        table: CatalogSchemaTableName,
        new_table: CatalogSchemaTableName,
    ) -> None:
        detail = f"to {new_table}"
        rules = self.rules.get()
        for target in (table, new_table):
            self._check_catalog(rules, identity, target.catalog, AccessMode.ALL, "rename table", table, detail)
            if TablePrivilege.OWNERSHIP not in _table_privileges(rules, identity, target):
                raise AccessDeniedError("rename table", table, detail)

    def check_can_show_tables_metadata(self, identity: Identity, schema: CatalogSchemaName) -> None:
        rules = self.rules.get()
        operation = "show metadata of tables in"
        self._check_catalog(rules, identity, schema.catalog, AccessMode.READ_ONLY, operation, schema)
        if not _can_access_schema(rules, identity, schema):
            raise AccessDeniedError(operation, schema)

    def filter_tables(
        self, identity: Identity, catalog: str, table_names: AbstractSet[SchemaTableName]
    ) -> set[SchemaTableName]:
        rules = self.rules.get()
        if not _can_access_catalog(rules, identity, catalog, AccessMode.READ_ONLY):
            return set()
        return {
            t
            for t in table_names
            if _table_privileges(
                rules, identity, CatalogSchemaTableName(catalog, t.schema, t.table)
            )
        }

    def check_can_add_column(self, identity: Identity, table: CatalogSchemaTableName) -> None:
        self._check_owner(identity, table, "add a column to table")

    def check_can_drop_column(self, identity: Identity, table: CatalogSchemaTableName) -> None:
        self._check_owner(identity, table, "drop a column from table")

    def check_can_rename_column(self, identity: Identity, table: CatalogSchemaTableName) -> None:
        self._check_owner(identity, table, "rename a column in table")

    def check_can_select_from_columns(
        self, identity: Identity, table: CatalogSchemaTableName, columns: AbstractSet[str]
    ) -> None:
        self._check_table(
            identity,
            table,
            AccessMode.READ_ONLY,
            {TablePrivilege.SELECT},
            "select from columns",
            format_columns(columns),
        )

    def check_can_insert_into_table(self, identity: Identity, table: CatalogSchemaTableName) -> None:
        self._check_table(identity, table, AccessMode.ALL, {TablePrivilege.INSERT}, "insert into table")

    def check_can_delete_from_table(self, identity: Identity, table: CatalogSchemaTableName) -> None:
        self._check_table(identity, table, AccessMode.ALL, {TablePrivilege.DELETE}, "delete from table")

    def check_can_create_view(self, identity: Identity, view: CatalogSchemaTableName) -> None:
        self._check_owner(identity, view, "create view")

    def check_can_drop_view(self, identity: Identity, view: CatalogSchemaTableName) -> None:
        self._check_owner(identity, view, "drop view")

    def check_can_create_view_with_select_from_columns(
        self, identity: Identity, table: CatalogSchemaTableName, columns: AbstractSet[str]
    ) -> None:
        # The referenced relation gets the same evaluation as a plain select.
        self._check_table(
            identity,
            table,
            AccessMode.READ_ONLY,
            {TablePrivilege.SELECT},
            "create view that selects from",
            format_columns(columns),
        )

    def check_can_set_system_session_property(self, identity: Identity, property_name: str) -> None:
        # No rule section governs system properties; a failed reload still denies.
        self.rules.get()

    def check_can_set_catalog_session_property(
        self, identity: Identity, catalog: str, property_name: str
    ) -> None:
        rules = self.rules.get()
        operation = "set catalog session property"
        resource = f"{catalog}.{property_name}"
        self._check_catalog(rules, identity, catalog, AccessMode.READ_ONLY, operation, resource)
        if not _can_set_session_property(rules, identity, catalog, property_name):
            raise AccessDeniedError(operation, resource)

    def _grant_privileges(self, privilege: Privilege) -> set[TablePrivilege]:
        if privilege is Privilege.SELECT:
            return {TablePrivilege.OWNERSHIP, TablePrivilege.GRANT_SELECT}
        return {TablePrivilege.OWNERSHIP}

    def check_can_grant_table_privilege(
        self,
        identity: Identity,
        privilege: Privilege,
        table: CatalogSchemaTableName,
        grantee: GrantPrincipal,
        with_grant_option: bool,
    ) -> None:
        self._check_table(
            identity,
            table,
            AccessMode.ALL,
            self._grant_privileges(privilege),
            f"grant privilege {privilege.value} on",
            f"to {grantee}",
        )

    def check_can_revoke_table_privilege(
        self,
        identity: Identity,
        privilege: Privilege,
        table: CatalogSchemaTableName,
        revokee: GrantPrincipal,
        grant_option_for: bool,
    ) -> None:
        self._check_table(
            identity,
            table,
            AccessMode.ALL,
            self._grant_privileges(privilege),
            f"revoke privilege {privilege.value} on",
            f"from {revokee}",
        )


class FileBasedSystemAccessControlFactory:
    """Creates FileBasedSystemAccessControl from provider options."""

    name = FileBasedSystemAccessControl.NAME

    def create(self, config: Mapping[str, str]) -> FileBasedSystemAccessControl:
        """
        Raises:
            ConfigurationError: If the options are missing or invalid.
            ConfigParseError: If the rule file cannot be loaded.
        """
        options = FileBasedAccessControlConfig.from_properties(config)
        return FileBasedSystemAccessControl.from_file(options.config_file, options.refresh_period)
