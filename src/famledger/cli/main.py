"""Main CLI entry point."""

import click

from famledger.config import ConfigError, load_config, setup_logging
from famledger.database.factories import create_sqlite_database

from famledger.cli.commands import (
    account,
    budget,
    category,
    group,
    period,
    recurring,
    report,
    transaction,
    user,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides FAMLEDGER_DB_PATH environment variable)",
    envvar="FAMLEDGER_DB_PATH",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Path to YAML config file (overrides FAMLEDGER_CONFIG environment variable)",
)
@click.pass_context
def cli(ctx, db_path: str | None, config_path: str | None):
    """famledger - family budgets, accounts and transactions.

    Track shared accounts, budgets per budget period, recurring series and
    reports for every member of a family group.
    """
    ctx.ensure_object(dict)

    try:
        if config_path is not None or "config" not in ctx.obj:
            ctx.obj["config"] = load_config(config_path)
        setup_logging(ctx.obj["config"])
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    # Open the database only when a command runs, not for --help
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path, config=ctx.obj["config"])
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


group.register_commands(cli)
user.register_commands(cli)
account.register_commands(cli)
category.register_commands(cli)
transaction.register_commands(cli)
budget.register_commands(cli)
period.register_commands(cli)
recurring.register_commands(cli)
report.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
