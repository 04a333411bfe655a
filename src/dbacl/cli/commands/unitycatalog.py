from __future__ import annotations

from pathlib import Path

import typer
from databricks.sdk.errors import NotFound, PermissionDenied

from dbacl.cli.common.context import UCAppContext, build_uc_context
from dbacl.cli.common.exits import EXIT_INVALID, exit_from_exc, warn_exit
from dbacl.cli.common.options import PrincipalOpt, ProfileOpt, RulesOpt, UserOpt
from dbacl.cli.common.output import out
from dbacl.core.errors import AccessDeniedError
from dbacl.core.identity import CatalogSchemaName
from dbacl.core.visibility import visible_catalogs, visible_schemas, visible_tables

uc_app = typer.Typer(
    help="Preview what a user can see in a Unity Catalog workspace.",
    no_args_is_help=False,
    invoke_without_command=True,
)


@uc_app.callback()
def _init(
    ctx: typer.Context,
    rules: Path = RulesOpt,
    user: str = UserOpt,
    principal: str | None = PrincipalOpt,
    profile: str | None = ProfileOpt,
):
    """Load the rules and connect to the workspace."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)
    ctx.obj = build_uc_context(rules, user, principal, profile)


@uc_app.command("catalogs")
def catalogs(ctx: typer.Context):
    """List the catalogs the user can see."""
    appctx: UCAppContext = ctx.obj
    acl = appctx.acl

    try:
        with out.status("Loading catalogs..."):
            shown = visible_catalogs(acl.manager, acl.transaction_id, acl.identity, appctx.adapter)
    except PermissionDenied as exc:
        exit_from_exc(exc, message="No permission to list catalogs.", code=1)

    if not shown:
        warn_exit(f"{acl.identity.user} cannot see any catalogs.")

    out.header("Catalogs")
    out.info(f"User: {acl.identity.user} | Catalogs: {len(shown)}")
    out.catalogs_table(shown)


@uc_app.command("schemas")
def schemas(
    ctx: typer.Context,
    catalog: str = typer.Option(..., "--catalog", help="Catalog name"),
):
    """List the schemas of a catalog the user can see."""
    appctx: UCAppContext = ctx.obj
    acl = appctx.acl

    try:
        with out.status("Loading schemas..."):
            shown = visible_schemas(
                acl.manager, acl.transaction_id, acl.identity, appctx.adapter, catalog
            )
    except AccessDeniedError as exc:
        exit_from_exc(exc)
    except NotFound as exc:
        exit_from_exc(exc, message=f"Catalog '{catalog}' does not exist.", code=1)
    except PermissionDenied as exc:
        exit_from_exc(exc, message=f"No permission to access catalog '{catalog}'.", code=1)

    if not shown:
        warn_exit("No visible schemas.")

    out.header("Schemas")
    out.info(f"User: {acl.identity.user} | Catalog: {catalog} | Schemas: {len(shown)}")
    out.schemas_table(shown)


@uc_app.command("tables")
def tables(
    ctx: typer.Context,
    schema: str = typer.Argument(..., help="Schema in the form catalog.schema"),
):
    """List the tables and views of a schema the user can see."""
    appctx: UCAppContext = ctx.obj
    acl = appctx.acl

    try:
        schema_ref = CatalogSchemaName.parse(schema)
    except ValueError as exc:
        exit_from_exc(exc, code=EXIT_INVALID)

    try:
        with out.status("Loading tables..."):
            shown = visible_tables(
                acl.manager, acl.transaction_id, acl.identity, appctx.adapter, schema_ref
            )
    except AccessDeniedError as exc:
        exit_from_exc(exc)
    except NotFound as exc:
        exit_from_exc(exc, message=f"Schema '{schema_ref}' does not exist.", code=1)
    except PermissionDenied as exc:
        exit_from_exc(exc, message=f"No permission to access schema '{schema_ref}'.", code=1)

    if not shown:
        warn_exit("No visible tables.")

    out.header("Tables")
    out.info(f"User: {acl.identity.user} | Schema: {schema_ref} | Tables: {len(shown)}")
    out.tables_table(shown)
