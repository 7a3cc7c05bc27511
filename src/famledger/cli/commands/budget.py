"""Budget commands."""

import click

from famledger.cli.error_handling import handle_domain_error, money, parse_amount_or_exit
from famledger.domain.budget import BudgetService
from famledger.domain.calculations import calculate_budget_status
from famledger.domain.entities import BUDGET_TYPES
from famledger.utils.resolvers import resolve_user


@click.group()
def budget_group():
    """Manage budgets."""
    pass


@budget_group.command("create")
@click.argument("description", metavar="DESCRIPTION")
@click.argument("amount", metavar="AMOUNT")
@click.option("--user", required=True, help="Owning user (ID, email or name)")
@click.option("--category", "categories", multiple=True, help="Tracked category key. Repeat for more.")
@click.option("--type", "budget_type", type=click.Choice(BUDGET_TYPES), default="monthly", show_default=True)
@click.option("--icon", help="Optional icon name")
@click.pass_context
def create_budget(
    ctx,
    description: str,
    amount: str,
    user: str,
    categories: tuple[str, ...],
    budget_type: str,
    icon: str | None,
):
    """Create a budget for a user.

    Examples:
        famledger budget create "Spesa" 400 --user anna@example.com --category spesa
        famledger budget create "Svago" "150,00" --user 1 --category cinema --category ristoranti
    """
    db = ctx.obj["db"]
    value = parse_amount_or_exit(ctx, amount)
    try:
        owner = resolve_user(db, user)
        budget_id = BudgetService(db).create_budget(
            description=description,
            amount=value,
            type=budget_type,
            categories=list(categories),
            user_id=owner.id,
            icon=icon,
        )
        click.echo(f"Created budget '{description}' (ID: {budget_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@budget_group.command("list")
@click.option("--user", help="Only budgets of this user")
@click.option("--group", "group_id", type=int, help="Only budgets of this group")
@click.pass_context
def list_budgets(ctx, user: str | None, group_id: int | None):
    """List budgets."""
    db = ctx.obj["db"]
    try:
        user_id = resolve_user(db, user).id if user else None
    except ValueError as e:
        handle_domain_error(ctx, e)

    budgets = BudgetService(db).list_budgets(user_id=user_id, group_id=group_id)
    if not budgets:
        click.echo("No budgets found.")
        return

    click.echo("\nBudgets:")
    click.echo("-" * 80)
    for b in budgets:
        click.echo(
            f"ID: {b.id:3d} | {b.description:20s} | {money(ctx, b.amount):>12s} | "
            f"{b.type:9s} | {', '.join(b.categories)}"
        )


@budget_group.command("progress")
@click.argument("user", metavar="USER")
@click.pass_context
def budget_progress(ctx, user: str):
    """Show budget progress of USER over their active budget period."""
    db = ctx.obj["db"]
    service = BudgetService(db)
    try:
        owner = resolve_user(db, user)
        summary = service.get_user_summary(owner.id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if summary.period_start is None:
        click.echo(f"No active budget period for '{owner.name}'. Start one with 'period start'.")
        return
    if not summary.budgets:
        click.echo(f"No budgets found for '{owner.name}'.")
        return

    end = summary.period_end or "open"
    click.echo(f"\nBudgets of {owner.name} ({summary.period_start} - {end}):")
    click.echo("-" * 80)
    for progress in summary.budgets:
        budget = service.get_budget(progress.id)
        status = calculate_budget_status(budget, progress.spent)
        click.echo(
            f"{progress.description:20s} | {money(ctx, progress.spent):>12s} / "
            f"{money(ctx, progress.amount):>12s} | {progress.percentage:6.1f}% | {status.status}"
        )
    click.echo("-" * 80)
    click.echo(
        f"{'Total':20s} | {money(ctx, summary.total_spent):>12s} / "
        f"{money(ctx, summary.total_budget):>12s} | {summary.overall_percentage:6.1f}% | "
        f"remaining {money(ctx, summary.total_remaining)}"
    )


@budget_group.command("update")
@click.argument("budget_id", type=int)
@click.option("--description", help="New description")
@click.option("--amount", help="New amount")
@click.option("--category", "categories", multiple=True, help="Replace tracked categories")
@click.option("--type", "budget_type", type=click.Choice(BUDGET_TYPES))
@click.pass_context
def update_budget(
    ctx,
    budget_id: int,
    description: str | None,
    amount: str | None,
    categories: tuple[str, ...],
    budget_type: str | None,
):
    """Update a budget."""
    value = parse_amount_or_exit(ctx, amount) if amount is not None else None
    try:
        BudgetService(ctx.obj["db"]).update_budget(
            budget_id,
            description=description,
            amount=value,
            type=budget_type,
            categories=list(categories) if categories else None,
        )
        click.echo(f"Updated budget {budget_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@budget_group.command("delete")
@click.argument("budget_id", type=int)
@click.pass_context
def delete_budget(ctx, budget_id: int):
    """Delete a budget."""
    try:
        BudgetService(ctx.obj["db"]).delete_budget(budget_id)
        click.echo(f"Deleted budget {budget_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register budget commands with main CLI."""
    cli.add_command(budget_group, name="budget")
