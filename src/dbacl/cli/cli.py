"""CLI application for the dbacl access control rules."""

import typer

from dbacl.cli.commands.rules import rules_app
from dbacl.cli.commands.unitycatalog import uc_app
from dbacl.cli.common.options import VerboseOpt
from dbacl.cli.common.output import configure_logging

app = typer.Typer(
    help="dbacl - rule-driven access control for catalogs, schemas and tables",
    no_args_is_help=True,
)


@app.callback()
def _main(verbose: bool = VerboseOpt):
    configure_logging(verbose)


app.add_typer(rules_app, name="rules")
app.add_typer(uc_app, name="uc")


if __name__ == "__main__":
    app()
