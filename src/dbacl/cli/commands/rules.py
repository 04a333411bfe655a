from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable

import typer

from dbacl.cli.common.context import build_acl_context
from dbacl.cli.common.exits import EXIT_INVALID, exit_from_exc, warn_exit
from dbacl.cli.common.options import ColumnOpt, PrincipalOpt, RulesOpt, UserOpt
from dbacl.cli.common.output import out
from dbacl.core.errors import AccessDeniedError, ConfigParseError
from dbacl.core.identity import (
    CatalogSchemaName,
    CatalogSchemaTableName,
    GrantPrincipal,
    PrincipalType,
    Privilege,
)
from dbacl.core.manager import AccessControlManager
from dbacl.core.rules_file import load_rules

rules_app = typer.Typer(
    help="Validate rule files and evaluate access decisions.",
    no_args_is_help=True,
)


class Operation(str, Enum):
    """Operations that `dbacl rules check` can evaluate."""

    ACCESS_CATALOG = "access-catalog"
    SHOW_SCHEMAS = "show-schemas"
    CREATE_SCHEMA = "create-schema"
    DROP_SCHEMA = "drop-schema"
    RENAME_SCHEMA = "rename-schema"
    SHOW_TABLES = "show-tables"
    CREATE_TABLE = "create-table"
    DROP_TABLE = "drop-table"
    RENAME_TABLE = "rename-table"
    ADD_COLUMN = "add-column"
    DROP_COLUMN = "drop-column"
    RENAME_COLUMN = "rename-column"
    SELECT = "select"
    INSERT = "insert"
    DELETE = "delete"
    CREATE_VIEW = "create-view"
    DROP_VIEW = "drop-view"
    CREATE_VIEW_SELECT = "create-view-select"
    SET_SESSION_PROPERTY = "set-session-property"
    GRANT = "grant"
    REVOKE = "revoke"


@dataclass(frozen=True)
class CheckInputs:
    """Options of `dbacl rules check` beyond the resource itself."""

    columns: frozenset[str]
    renamed_to: Any = None
    privilege: Privilege = Privilege.SELECT
    grantee: GrantPrincipal | None = None
    grant_option: bool = False


def _catalog(value: str) -> str:
    value = value.strip()
    if not value or "." in value:
        raise ValueError("Catalog must be a single name without dots.")
    return value


def _session_property(value: str) -> tuple[str, str]:
    catalog, sep, name = value.strip().partition(".")
    if not sep or not catalog or not name:
        raise ValueError("Session property must be in the form `catalog.property`.")
    return catalog, name


def _schema_name(value: str) -> str:
    value = value.strip()
    if not value or "." in value:
        raise ValueError("New schema name must be a single name without dots.")
    return value


_RENAME_TARGETS: dict[Operation, Callable[[str], Any]] = {
    Operation.RENAME_SCHEMA: _schema_name,
    Operation.RENAME_TABLE: CatalogSchemaTableName.parse,
}


def _renamed_to(operation: Operation, to: str | None) -> Any:
    parse = _RENAME_TARGETS.get(operation)
    if parse is None:
        return None
    if to is None:
        raise ValueError(f"`{operation.value}` needs the new name in --to.")
    return parse(to)


def _plain(check: Callable[..., None]) -> Callable[..., None]:
    """Adapt a manager check that takes nothing but the resource."""
    return lambda manager, tx, identity, resource, inputs: check(manager, tx, identity, resource)


def _with_columns(check: Callable[..., None]) -> Callable[..., None]:
    return lambda manager, tx, identity, resource, inputs: check(manager, tx, identity, resource, inputs.columns)


def _renaming(check: Callable[..., None]) -> Callable[..., None]:
    return lambda manager, tx, identity, resource, inputs: check(
        manager, tx, identity, resource, inputs.renamed_to
    )


def _granting(check: Callable[..., None]) -> Callable[..., None]:
    return lambda manager, tx, identity, resource, inputs: check(
        manager, tx, identity, inputs.privilege, resource, inputs.grantee, inputs.grant_option
    )


_Check = tuple[Callable[[str], Any], Callable[..., None]]

_CHECKS: dict[Operation, _Check] = {
    Operation.ACCESS_CATALOG: (_catalog, _plain(AccessControlManager.check_can_access_catalog)),
    Operation.SHOW_SCHEMAS: (_catalog, _plain(AccessControlManager.check_can_show_schemas)),
    Operation.CREATE_SCHEMA: (CatalogSchemaName.parse, _plain(AccessControlManager.check_can_create_schema)),
    Operation.DROP_SCHEMA: (CatalogSchemaName.parse, _plain(AccessControlManager.check_can_drop_schema)),
    Operation.RENAME_SCHEMA: (CatalogSchemaName.parse, _renaming(AccessControlManager.check_can_rename_schema)),
    Operation.SHOW_TABLES: (
        CatalogSchemaName.parse,
        _plain(AccessControlManager.check_can_show_tables_metadata),
    ),
    Operation.CREATE_TABLE: (CatalogSchemaTableName.parse, _plain(AccessControlManager.check_can_create_table)),
    Operation.DROP_TABLE: (CatalogSchemaTableName.parse, _plain(AccessControlManager.check_can_drop_table)),
    Operation.RENAME_TABLE: (
        CatalogSchemaTableName.parse,
        _renaming(AccessControlManager.check_can_rename_table),
    ),
    Operation.ADD_COLUMN: (CatalogSchemaTableName.parse, _plain(AccessControlManager.check_can_add_column)),
    Operation.DROP_COLUMN: (CatalogSchemaTableName.parse, _plain(AccessControlManager.check_can_drop_column)),
    Operation.RENAME_COLUMN: (
        CatalogSchemaTableName.parse,
        _plain(AccessControlManager.check_can_rename_column),
    ),
    Operation.SELECT: (
        CatalogSchemaTableName.parse,
        _with_columns(AccessControlManager.check_can_select_from_columns),
    ),
    Operation.INSERT: (
        CatalogSchemaTableName.parse,
        _plain(AccessControlManager.check_can_insert_into_table),
    ),
    Operation.DELETE: (
        CatalogSchemaTableName.parse,
        _plain(AccessControlManager.check_can_delete_from_table),
    ),
    Operation.CREATE_VIEW: (CatalogSchemaTableName.parse, _plain(AccessControlManager.check_can_create_view)),
    Operation.DROP_VIEW: (CatalogSchemaTableName.parse, _plain(AccessControlManager.check_can_drop_view)),
    Operation.CREATE_VIEW_SELECT: (
        CatalogSchemaTableName.parse,
        _with_columns(AccessControlManager.check_can_create_view_with_select_from_columns),
    ),
    Operation.SET_SESSION_PROPERTY: (
        _session_property,
        lambda manager, tx, identity, resource, inputs: manager.check_can_set_catalog_session_property(
            tx, identity, *resource
        ),
    ),
    Operation.GRANT: (
        CatalogSchemaTableName.parse,
        _granting(AccessControlManager.check_can_grant_table_privilege),
    ),
    Operation.REVOKE: (
        CatalogSchemaTableName.parse,
        _granting(AccessControlManager.check_can_revoke_table_privilege),
    ),
}


@rules_app.command("validate")
def validate(rules: Path = RulesOpt):
    """Parse a rule file and show which sections it restricts."""
    try:
        rule_set = load_rules(rules)
    except ConfigParseError as exc:
        exit_from_exc(exc, code=EXIT_INVALID)

    out.header("Rule file")
    out.kv({"Path": rules})
    out.sections_table(rule_set.sections())
    out.success("Rule file is valid.")


@rules_app.command("check-user")
def check_user(
    rules: Path = RulesOpt,
    user: str = UserOpt,
    principal: str | None = PrincipalOpt,
):
    """Check whether a principal may act as a user."""
    appctx = build_acl_context(rules, user, principal)
    try:
        appctx.manager.check_can_set_user(principal, user)
    except AccessDeniedError as exc:
        exit_from_exc(exc)
    out.success(f"Principal {principal} may act as user {user}.")


@rules_app.command("check")
def check(
    operation: Operation = typer.Argument(..., help="Operation to evaluate"),
    resource: str = typer.Argument(
        ...,
        help="catalog, catalog.schema, catalog.schema.table or catalog.property",
    ),
    rules: Path = RulesOpt,
    user: str = UserOpt,
    principal: str | None = PrincipalOpt,
    columns: list[str] = ColumnOpt,
    to: str | None = typer.Option(
        None,
        "--to",
        help="New name for rename-schema (schema) or rename-table (catalog.schema.table)",
    ),
    privilege: Privilege = typer.Option(Privilege.SELECT, "--privilege", help="Privilege for grant or revoke"),
    grantee: str | None = typer.Option(
        None, "--grantee", help="Grantee or revokee for grant or revoke (defaults to --user)"
    ),
    grantee_type: PrincipalType = typer.Option(PrincipalType.USER, "--grantee-type"),
    grant_option: bool = typer.Option(
        False, "--grant-option", help="WITH GRANT OPTION for grant, GRANT OPTION FOR for revoke"
    ),
):
    """Evaluate one operation on one resource for a user."""
    parse, run = _CHECKS[operation]
    try:
        target = parse(resource)
        renamed_to = _renamed_to(operation, to)
    except ValueError as exc:
        exit_from_exc(exc, code=EXIT_INVALID)

    inputs = CheckInputs(
        columns=frozenset(columns),
        renamed_to=renamed_to,
        privilege=privilege,
        grantee=GrantPrincipal(grantee_type, grantee or user),
        grant_option=grant_option,
    )
    appctx = build_acl_context(rules, user, principal)
    try:
        run(appctx.manager, appctx.transaction_id, appctx.identity, target, inputs)
    except AccessDeniedError as exc:
        exit_from_exc(exc)
    out.success(f"{user} may {operation.value} {resource}.")


@rules_app.command("filter-catalogs")
def filter_catalogs(
    catalogs: list[str] = typer.Argument(..., help="Candidate catalog names"),
    rules: Path = RulesOpt,
    user: str = UserOpt,
):
    """Show which of the given catalogs a user can see."""
    appctx = build_acl_context(rules, user)
    visible = appctx.manager.filter_catalogs(appctx.transaction_id, appctx.identity, set(catalogs))
    hidden = len(set(catalogs)) - len(visible)

    if not visible:
        warn_exit(f"{user} cannot see any of the {len(set(catalogs))} catalogs.")

    out.header("Visible catalogs")
    out.info(f"User: {user} | Visible: {len(visible)} | Hidden: {hidden}")
    out.names_table(visible, title="Catalogs", column="Catalog")
