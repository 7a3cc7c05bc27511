"""Category management commands."""

import click

from famledger.cli.error_handling import handle_domain_error
from famledger.domain.category import CategoryService
from famledger.domain.finance_logic import DEFAULT_CATEGORY_COLOR, DEFAULT_CATEGORY_ICON
from famledger.utils.resolvers import resolve_category


@click.group()
def category_group():
    """Manage categories."""
    pass


@category_group.command("create")
@click.argument("key", metavar="KEY")
@click.option("--label", help="Display label (defaults to KEY)")
@click.option("--icon", default=DEFAULT_CATEGORY_ICON, show_default=True)
@click.option("--color", default=DEFAULT_CATEGORY_COLOR, show_default=True, help="Hex color")
@click.option("--group", "group_id", type=int, required=True, help="Owning group")
@click.pass_context
def create_category(ctx, key: str, label: str | None, icon: str, color: str, group_id: int):
    """Create a category.

    KEY is stored lowercased and must be unique inside the group.

    Examples:
        famledger category create spesa --label "Spesa" --group 1
        famledger category create casa --color "#3B82F6" --icon home --group 1
    """
    service = CategoryService(ctx.obj["db"])
    try:
        category_id = service.create_category(
            key=key, label=label or key, icon=icon, color=color, group_id=group_id
        )
        click.echo(f"Created category '{key.lower()}' (ID: {category_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@category_group.command("list")
@click.option("--group", "group_id", type=int, help="Only categories of this group")
@click.pass_context
def list_categories(ctx, group_id: int | None):
    """List categories."""
    service = CategoryService(ctx.obj["db"])

    categories = service.list_categories(group_id=group_id)
    if not categories:
        click.echo("No categories found.")
        return

    click.echo("\nCategories:")
    click.echo("-" * 60)
    for c in categories:
        click.echo(f"ID: {c.id:3d} | {c.key:15s} | {c.label:20s} | {c.color}")


@category_group.command("delete")
@click.argument("category", metavar="CATEGORY")
@click.option("--group", "group_id", type=int, help="Group to look the category up in")
@click.option("--force", is_flag=True, help="Delete even if transactions or budgets use it")
@click.pass_context
def delete_category(ctx, category: str, group_id: int | None, force: bool):
    """Delete a category.

    CATEGORY can be an ID, key or label. Categories still used by
    transactions or budgets are only deleted with --force.
    """
    db = ctx.obj["db"]
    try:
        category_obj = resolve_category(db, category, group_id=group_id)
        CategoryService(db).delete_category(category_obj.id, force=force)
        click.echo(f"Deleted category '{category_obj.key}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
