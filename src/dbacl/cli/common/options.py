"""Common CLI options for the CLI."""

import typer

RulesOpt = typer.Option(
    ...,
    "--rules",
    "-r",
    envvar="DBACL_RULES_FILE",
    help="Path of the JSON rule file",
)

UserOpt = typer.Option(
    ...,
    "--user",
    "-u",
    envvar="DBACL_USER",
    help="Username to evaluate the rules for",
)

PrincipalOpt = typer.Option(
    None,
    "--principal",
    help="Authenticated principal of the caller (e.g. alice/host@REALM)",
)

ColumnOpt = typer.Option(
    [],
    "--column",
    "-c",
    help="Column referenced by a select. This is reusable.",
    show_default=False,
)

ProfileOpt = typer.Option(
    None,
    "--profile",
    "-p",
    help="Databricks CLI profile (from ~/.databrickscfg)",
)

VerboseOpt = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Log rule loading and access decisions to stderr",
)
