"""Tests for ProgramExecutor against a mocked execution layer."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Annotated, Any, Optional
from unittest.mock import Mock

import pytest

from procspec.base import ProgramWithErrorBase
from procspec.binder import DeclaredParameter
from procspec.config import ErrorCodes, ProgramConfig, configure
from procspec.descriptors import ParameterDirection, ParameterName, ParameterOrder, ParameterProperty, SqlType, program
from procspec.dialects import PostgresDialect
from procspec.exceptions import MissingProgramNameError, ProgramValidationError
from procspec.executor import CallResult, ExecutionLayer, ProgramExecutor
from procspec.result import ExecuteResult


@program("sp_archive_tasks")
@dataclass
class ArchiveTasksParam:
    user_id: Annotated[int, ParameterOrder(1)] = 0
    before: Annotated[str, ParameterOrder(2)] = ""


@program("sp_transfer", schema="bank")
@dataclass(kw_only=True)
class TransferParam(ProgramWithErrorBase):
    source_id: Annotated[int, ParameterOrder(1), ParameterName("SourceId")]
    amount: Annotated[Decimal, ParameterOrder(2)]
    balance: Annotated[
        Optional[Decimal], ParameterOrder(3), ParameterProperty(direction=ParameterDirection.OUTPUT)
    ] = None


@program("fn_get_tasks", schema="public")
@dataclass
class GetTasksParam:
    user_id: Annotated[int, ParameterOrder(1)] = 0
    status: Annotated[str, ParameterOrder(2)] = "open"


@program("fn_count_tasks")
@dataclass
class CountTasksParam:
    user_id: Annotated[int, ParameterOrder(1)] = 0


@dataclass
class UndeclaredParam:
    user_id: Annotated[int, ParameterOrder(1)] = 0


@program("sp_broken")
@dataclass
class BrokenParam:
    a: Annotated[int, ParameterOrder(1)] = 0
    b: Annotated[int, ParameterOrder(1)] = 0


@pytest.fixture
def layer() -> Mock:
    return Mock(spec=ExecutionLayer)


def to_tuple(row: "Any", columns: "Any") -> "tuple[Any, ...]":
    return tuple(row)


def test_mock_layer_satisfies_protocol(layer: Mock) -> None:
    assert isinstance(layer, ExecutionLayer)


def test_execute_without_outputs_uses_positional_call(layer: Mock) -> None:
    layer.update.return_value = 4

    result = ProgramExecutor(layer).execute(ArchiveTasksParam(user_id=7, before="2024-01-01"))

    layer.update.assert_called_once_with("{call [dbo].[sp_archive_tasks](?,?)}", [7, "2024-01-01"])
    layer.call_with_named_parameters.assert_not_called()
    assert result == ExecuteResult(4, None)
    assert result.is_success()


def test_execute_with_outputs_writes_values_back(layer: Mock) -> None:
    layer.call_with_named_parameters.return_value = CallResult(
        {"balance": Decimal("12.50"), "sql_error_cd": 0, "progress_message": "done"}, 0
    )
    param = TransferParam(source_id=3, amount=Decimal("10.00"))

    result = ProgramExecutor(layer).execute(param)

    schema, name, declared, inputs = layer.call_with_named_parameters.call_args.args
    assert (schema, name) == ("bank", "sp_transfer")
    assert declared[:3] == (
        DeclaredParameter("SourceId", SqlType.INTEGER, ParameterDirection.INPUT),
        DeclaredParameter("amount", SqlType.DECIMAL, ParameterDirection.INPUT),
        DeclaredParameter("balance", SqlType.DECIMAL, ParameterDirection.OUTPUT),
    )
    assert inputs == {"SourceId": 3, "amount": Decimal("10.00")}
    layer.update.assert_not_called()
    assert param.balance == Decimal("12.50")
    assert param.progress_message == "done"
    assert not param.has_sql_error()
    assert result.return_code == 0
    assert result.affected_rows == 0
    assert result.is_success()


def test_execute_classifies_return_code(layer: Mock) -> None:
    configure(error_codes=ErrorCodes(not_found=404))
    layer.call_with_named_parameters.return_value = CallResult({"sql_error_cd": 404}, 404)
    param = TransferParam(source_id=3, amount=Decimal(1))

    result = ProgramExecutor(layer).execute(param)

    assert result.has_error()
    assert result.is_not_found_error()
    assert param.has_sql_error()
    assert param.balance is None


@pytest.mark.parametrize(
    "return_value",
    [None, "404", True, float("nan"), float("inf"), float("-inf"), 1j, Decimal("NaN"), Decimal("Infinity")],
)
def test_non_numeric_return_value_is_ignored(layer: Mock, return_value: Any) -> None:
    layer.call_with_named_parameters.return_value = CallResult({}, return_value)

    result = ProgramExecutor(layer).execute(TransferParam(source_id=1, amount=Decimal(1)))

    assert result.return_code is None
    assert result.is_success()


def test_numeric_return_value_is_converted_to_int(layer: Mock) -> None:
    layer.call_with_named_parameters.return_value = CallResult({}, Decimal(7))

    assert ProgramExecutor(layer).execute(TransferParam(source_id=1, amount=Decimal(1))).return_code == 7


def test_query_maps_rows(layer: Mock) -> None:
    layer.query.return_value = [(1, "a")]
    executor = ProgramExecutor(layer, ProgramConfig(dialect=PostgresDialect()))

    rows = executor.query(GetTasksParam(user_id=1), to_tuple, "created_at DESC")

    assert rows == [(1, "a")]
    layer.query.assert_called_once_with(
        'SELECT * FROM "public"."fn_get_tasks"(?,?) ORDER BY created_at DESC', [1, "open"], to_tuple
    )


def test_query_first_or_default(layer: Mock) -> None:
    executor = ProgramExecutor(layer)

    layer.query.return_value = [(1,), (2,)]
    assert executor.query_first_or_default(GetTasksParam(), to_tuple) == (1,)

    layer.query.return_value = []
    assert executor.query_first_or_default(GetTasksParam(), to_tuple) is None


def test_execute_scalar(layer: Mock) -> None:
    layer.query_for_scalar.return_value = 12

    count = ProgramExecutor(layer).execute_scalar(CountTasksParam(user_id=5), int)

    assert count == 12
    layer.query_for_scalar.assert_called_once_with("SELECT [dbo].[fn_count_tasks](?)", [5], int)


def test_injected_config_wins_over_global(layer: Mock) -> None:
    configure(dialect="mysql")
    executor = ProgramExecutor(layer, ProgramConfig(default_schema="reporting"))

    executor.execute_scalar(CountTasksParam())

    assert layer.query_for_scalar.call_args.args[0] == "SELECT [reporting].[fn_count_tasks](?)"
    assert executor.config.default_schema == "reporting"


def test_missing_program_raises_before_layer_call(layer: Mock) -> None:
    executor = ProgramExecutor(layer)

    with pytest.raises(MissingProgramNameError):
        executor.execute(UndeclaredParam())
    with pytest.raises(MissingProgramNameError):
        executor.query(UndeclaredParam(), to_tuple)
    with pytest.raises(MissingProgramNameError):
        executor.execute_scalar(UndeclaredParam())

    assert layer.method_calls == []


def test_invalid_type_raises_validation_error(layer: Mock) -> None:
    with pytest.raises(ProgramValidationError):
        ProgramExecutor(layer).execute(BrokenParam())

    layer.update.assert_not_called()


def test_validation_can_be_disabled(layer: Mock) -> None:
    layer.update.return_value = 1

    assert ProgramExecutor(layer, validate=False).execute(BrokenParam()).affected_rows == 1


def test_layer_errors_propagate(layer: Mock) -> None:
    layer.update.side_effect = RuntimeError("connection lost")

    with pytest.raises(RuntimeError, match="connection lost"):
        ProgramExecutor(layer).execute(ArchiveTasksParam())
