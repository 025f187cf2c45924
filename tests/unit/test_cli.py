"""Tests for the procspec command line interface."""

import sys
import textwrap
from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from procspec.cli import get_procspec_group

MODULE_NAME = "procspec_cli_params"

MODULE_SOURCE = textwrap.dedent(
    """
    from dataclasses import dataclass
    from typing import Annotated, Optional

    from procspec import ParameterDirection, ParameterOrder, ParameterProperty, ProgramBase, program


    @program("fn_get_tasks", schema="public")
    @dataclass
    class GetTasksParam(ProgramBase):
        user_id: Annotated[int, ParameterOrder(1)] = 0
        status: Annotated[str, ParameterOrder(2)] = "open"


    @program("sp_touch")
    @dataclass
    class TouchParam(ProgramBase):
        user_id: Annotated[int, ParameterOrder(1)] = 0
        result: Annotated[Optional[int], ParameterProperty(direction=ParameterDirection.OUTPUT)] = None


    @dataclass
    class NoNameParam(ProgramBase):
        user_id: Annotated[int, ParameterOrder(1)] = 0
    """
)

VALID_MODULE_SOURCE = textwrap.dedent(
    """
    from procspec import ProgramBase, program


    @program("sp_ping")
    class PingParam(ProgramBase):
        pass
    """
)


@pytest.fixture
def params_module(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[str, None, None]:
    (tmp_path / f"{MODULE_NAME}.py").write_text(MODULE_SOURCE)
    (tmp_path / f"{MODULE_NAME}_valid.py").write_text(VALID_MODULE_SOURCE)
    monkeypatch.syspath_prepend(str(tmp_path))
    yield MODULE_NAME
    sys.modules.pop(MODULE_NAME, None)
    sys.modules.pop(f"{MODULE_NAME}_valid", None)


def test_help_lists_commands() -> None:
    result = CliRunner().invoke(get_procspec_group(), ["--help"])

    assert result.exit_code == 0
    assert "validate" in result.output
    assert "sql" in result.output


def test_validate_module_reports_errors_and_warnings(params_module: str) -> None:
    result = CliRunner().invoke(get_procspec_group(), ["validate", params_module])

    assert result.exit_code == 1
    assert "MISSING_DB_PROGRAM_NAME" in result.output
    assert "UNORDERED_PARAMETER" in result.output
    assert "Checked 3 type(s): 1 error(s), 1 warning(s)." in result.output


def test_validate_valid_class_path(params_module: str) -> None:
    result = CliRunner().invoke(get_procspec_group(), ["validate", f"{params_module}_valid.PingParam"])

    assert result.exit_code == 0
    assert "Checked 1 type(s): 0 error(s), 0 warning(s)." in result.output


def test_validate_unknown_path() -> None:
    result = CliRunner().invoke(get_procspec_group(), ["validate", "procspec_no_such_module"])

    assert result.exit_code == 1
    assert "Error loading parameter types" in result.output


@pytest.mark.parametrize(
    ("args", "expected"),
    [
        ([], "{call [public].[fn_get_tasks](?,?)}"),
        (["--kind", "scalar"], "SELECT [public].[fn_get_tasks](?,?)"),
        (["--kind", "table"], "SELECT * FROM [public].[fn_get_tasks](?,?)"),
    ],
)
def test_sql_kinds(params_module: str, args: "list[str]", expected: str) -> None:
    result = CliRunner().invoke(get_procspec_group(), ["sql", f"{params_module}.GetTasksParam", *args])

    assert result.exit_code == 0
    assert result.output.strip() == expected


def test_sql_with_dialect_schema_and_order_by(params_module: str) -> None:
    result = CliRunner().invoke(
        get_procspec_group(),
        [
            "--dialect",
            "postgres",
            "--schema",
            "app",
            "sql",
            f"{params_module}.TouchParam",
            "--kind",
            "table",
            "--order-by",
            "created_at DESC",
        ],
    )

    assert result.exit_code == 0
    assert result.output.strip() == 'SELECT * FROM "app"."sp_touch"(?) ORDER BY created_at DESC'


def test_sql_for_undeclared_type_fails(params_module: str) -> None:
    result = CliRunner().invoke(get_procspec_group(), ["sql", f"{params_module}.NoNameParam"])

    assert result.exit_code == 1
    assert "Program name is not declared" in result.output


def test_unknown_dialect_fails() -> None:
    result = CliRunner().invoke(get_procspec_group(), ["--dialect", "no-such-dialect", "validate", "procspec"])

    assert result.exit_code == 1
    assert "Unknown dialect" in result.output
