from types import ModuleType
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from click import Group

    from procspec.validation import ValidationResult

__all__ = ("get_procspec_group",)


def _resolve_types(paths: "tuple[str, ...]") -> "list[type]":
    from procspec.utils.module_loader import import_string
    from procspec.validation import discover_program_types

    types: list[type] = []
    for path in paths:
        target = import_string(path)
        if isinstance(target, ModuleType):
            types.extend(discover_program_types(target))
        elif isinstance(target, type):
            types.append(target)
        else:
            msg = f"{path} is neither a module nor a class"
            raise ImportError(msg)
    return types


def _render_result(console: Any, result: "ValidationResult") -> None:
    from rich.table import Table

    table = Table(title="Program validation", show_lines=False)
    table.add_column("Severity", style="bold")
    table.add_column("Type", no_wrap=True)
    table.add_column("Code", no_wrap=True)
    table.add_column("Message")
    for error in result.errors:
        table.add_row("[red]error[/]", error.type.__qualname__, str(error.code), error.message)
    for warning in result.warnings:
        table.add_row("[yellow]warning[/]", warning.type.__qualname__, str(warning.code), warning.message)
    console.print(table)


def get_procspec_group() -> "Group":
    """Get the procspec CLI group.

    Raises:
        MissingDependencyError: If the `click` package is not installed.

    Returns:
        The procspec CLI group.
    """
    from procspec.exceptions import MissingDependencyError

    try:
        import rich_click as click
    except ImportError:
        try:
            import click  # type: ignore[no-redef]
        except ImportError as e:
            raise MissingDependencyError(package="click", install_package="cli") from e
    from rich import get_console

    console = get_console()

    @click.group(name="procspec")
    @click.option("--dialect", help="Dialect name, e.g. 'tsql', 'postgres' or 'mysql'.", type=str, default=None)
    @click.option("--schema", help="Default schema for programs that declare none.", type=str, default=None)
    @click.pass_context
    def procspec_group(ctx: "click.Context", dialect: Optional[str], schema: Optional[str]) -> None:
        """procspec: stored program SQL generation and validation."""
        from procspec.config import configure
        from procspec.exceptions import ImproperConfigurationError

        ctx.ensure_object(dict)
        try:
            ctx.obj["config"] = configure(dialect=dialect, default_schema=schema)
        except ImproperConfigurationError as e:
            console.print(f"[red]{e}[/]")
            ctx.exit(1)

    @procspec_group.command(name="validate", help="Validate parameter types found in modules or classes.")
    @click.argument("paths", nargs=-1, required=True)
    def validate_command(paths: "tuple[str, ...]") -> None:  # pyright: ignore[reportUnusedFunction]
        from procspec.validation import validate_and_collect

        ctx = click.get_current_context()
        try:
            types = _resolve_types(paths)
        except ImportError as e:
            console.print(f"[red]Error loading parameter types: {e}[/]")
            ctx.exit(1)
            return
        result = validate_and_collect(*types)
        if result.errors or result.warnings:
            _render_result(console, result)
        console.print(
            f"Checked {len(types)} type(s): {len(result.errors)} error(s), {len(result.warnings)} warning(s)."
        )
        if not result.is_valid:
            ctx.exit(1)

    @procspec_group.command(name="sql", help="Print the SQL a parameter type produces.")
    @click.argument("path")
    @click.option(
        "--kind",
        type=click.Choice(["procedure", "table", "scalar"]),
        default="procedure",
        show_default=True,
        help="Kind of stored program call.",
    )
    @click.option("--order-by", type=str, default=None, help="ORDER BY expression for table functions.")
    def sql_command(path: str, kind: str, order_by: Optional[str]) -> None:  # pyright: ignore[reportUnusedFunction]
        from procspec import binder
        from procspec.exceptions import MissingProgramNameError
        from procspec.utils.module_loader import import_string

        ctx = click.get_current_context()
        try:
            param_type = import_string(path)
        except ImportError as e:
            console.print(f"[red]Error loading parameter type: {e}[/]")
            ctx.exit(1)
            return
        config = ctx.obj["config"]
        try:
            if kind == "table":
                sql = binder.create_table_function_query(param_type, order_by, config)
            elif kind == "scalar":
                sql = binder.create_scalar_function_query(param_type, config)
            else:
                sql = binder.create_stored_procedure_call(param_type, config)
        except MissingProgramNameError as e:
            console.print(f"[red]{e}[/]")
            ctx.exit(1)
            return
        click.echo(sql)

    return procspec_group


def main() -> None:
    get_procspec_group()()
