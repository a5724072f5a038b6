"""
CodeExecutor - Sandboxed execution of generated analysis code.

The code string comes from the reasoning service and is treated as untrusted.
The goal is fault containment for a single user's own data, not multi-tenant
isolation:
- `dataset` (a private copy of the rows) is the only bound identifier
- builtins are restricted to a pure whitelist (no I/O, no imports, no getattr)
- the AST is checked before anything runs: no imports, no private attributes,
  no frame/code/traceback attributes (`gi_frame`, `f_back`, `f_globals`, ...)
  and no `str.format`, which resolves attributes from inside a template
- a wall-clock deadline is enforced on the generated code's frames
- every fault becomes an ExecutionFault value; nothing is raised to the caller
"""

from __future__ import annotations

import ast
import builtins
import sys
import time
from collections.abc import Sequence
from dataclasses import dataclass
from types import FrameType
from typing import Any

import structlog

from nl_data_analyst.core.schema import Row

logger = structlog.get_logger()

GENERATED_FILENAME = "<generated-analysis>"
_ENTRYPOINT = "__analysis__"

DEFAULT_MAX_ROWS = 250_000
DEFAULT_TIMEOUT_SECONDS = 10.0

_SAFE_BUILTIN_NAMES = (
    "abs",
    "all",
    "any",
    "bool",
    "dict",
    "divmod",
    "enumerate",
    "filter",
    "float",
    "frozenset",
    "int",
    "isinstance",
    "len",
    "list",
    "map",
    "max",
    "min",
    "pow",
    "range",
    "reversed",
    "round",
    "set",
    "sorted",
    "str",
    "sum",
    "tuple",
    "zip",
    "ArithmeticError",
    "Exception",
    "IndexError",
    "KeyError",
    "TypeError",
    "ValueError",
    "ZeroDivisionError",
)
SAFE_BUILTINS: dict[str, Any] = {name: getattr(builtins, name) for name in _SAFE_BUILTIN_NAMES}

# Names rejected up front for a clearer message than the NameError they would raise
_FORBIDDEN_NAMES = frozenset(
    {
        "BaseException",
        "breakpoint",
        "compile",
        "delattr",
        "eval",
        "exec",
        "getattr",
        "globals",
        "locals",
        "open",
        "setattr",
        "vars",
    }
)

# Generator, coroutine, frame, traceback and code object internals lead back to
# the executor's own frames and module globals
_INTROSPECTION_PREFIXES = ("ag_", "co_", "cr_", "f_", "gi_", "tb_")

# Format templates walk attributes ("{0.gi_frame}") without an Attribute node
_FORBIDDEN_ATTRIBUTES = frozenset({"format", "format_map"})


@dataclass(frozen=True)
class ExecutionFault:
    """A fault raised by generated code, converted to a value."""

    error_type: str
    message: str

    def describe(self) -> str:
        return f"{self.error_type}: {self.message}" if self.message else self.error_type


@dataclass(frozen=True)
class ExecutionOutcome:
    """
    Result of running generated code: a value or a fault, never both.

    Attributes:
        value: Whatever the code returned (None when it has no return)
        fault: ExecutionFault if the code could not run to completion
        elapsed_ms: Wall-clock time spent
    """

    value: Any = None
    fault: ExecutionFault | None = None
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.fault is None


class ExecutionTimeout(BaseException):
    """Raised inside generated code when its time budget is spent."""

    pass


class UnsafeCodeError(Exception):
    """Generated code uses a construct the sandbox does not allow."""

    pass


class _SafetyValidator(ast.NodeVisitor):
    """Collect constructs the sandbox rejects before execution."""

    def __init__(self) -> None:
        self.violations: list[str] = []

    def _flag(self, node: ast.AST, reason: str) -> None:
        self.violations.append(f"line {getattr(node, 'lineno', '?')}: {reason}")

    def visit_Import(self, node: ast.Import) -> None:
        self._flag(node, "imports are not allowed")

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        self._flag(node, "imports are not allowed")

    def visit_Global(self, node: ast.Global) -> None:
        self._flag(node, "'global' is not allowed")

    def visit_Nonlocal(self, node: ast.Nonlocal) -> None:
        self._flag(node, "'nonlocal' is not allowed")

    def visit_Yield(self, node: ast.Yield) -> None:
        self._flag(node, "'yield' is not allowed")

    def visit_YieldFrom(self, node: ast.YieldFrom) -> None:
        self._flag(node, "'yield' is not allowed")

    def visit_Await(self, node: ast.Await) -> None:
        self._flag(node, "'await' is not allowed")

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        self._flag(node, "async functions are not allowed")

    def visit_Attribute(self, node: ast.Attribute) -> None:
        if node.attr.startswith("_"):
            self._flag(node, f"access to private attribute '{node.attr}' is not allowed")
        elif node.attr.startswith(_INTROSPECTION_PREFIXES):
            self._flag(node, f"access to introspection attribute '{node.attr}' is not allowed")
        elif node.attr in _FORBIDDEN_ATTRIBUTES:
            self._flag(node, f"'.{node.attr}()' is not allowed, use an f-string")
        self.generic_visit(node)

    def visit_Name(self, node: ast.Name) -> None:
        if node.id.startswith("__"):
            self._flag(node, f"name '{node.id}' is not allowed")
        elif node.id in _FORBIDDEN_NAMES:
            self._flag(node, f"'{node.id}' is not available")

    def visit_ExceptHandler(self, node: ast.ExceptHandler) -> None:
        if node.type is None:
            self._flag(node, "bare 'except:' is not allowed")
        self.generic_visit(node)


def _compile(code: str) -> Any:
    """
    Compile generated code as the body of `__analysis__(dataset)`.

    Raises:
        SyntaxError: If the code does not parse
        UnsafeCodeError: If the code uses a rejected construct
    """
    module = ast.parse(code, filename=GENERATED_FILENAME, mode="exec")

    validator = _SafetyValidator()
    validator.visit(module)
    if validator.violations:
        raise UnsafeCodeError("; ".join(validator.violations))

    wrapper = ast.parse(f"def {_ENTRYPOINT}(dataset):\n    pass\n", filename=GENERATED_FILENAME)
    function_def = wrapper.body[0]
    assert isinstance(function_def, ast.FunctionDef)
    function_def.body = module.body or [ast.Pass()]
    ast.fix_missing_locations(wrapper)
    return compile(wrapper, GENERATED_FILENAME, "exec")


def _deadline_tracer(deadline: float):
    """Trace hook that interrupts generated frames once the deadline passes."""

    def trace(frame: FrameType, event: str, arg: Any):
        if frame.f_code.co_filename != GENERATED_FILENAME:
            return None
        if time.monotonic() > deadline:
            raise ExecutionTimeout()
        return trace

    return trace


class CodeExecutor:
    """
    Runs generated code against an in-memory dataset under an execution budget.

    Budget:
    - max_rows: datasets larger than this are refused without running
    - timeout_seconds: wall-clock limit for the generated code
    """

    def __init__(self, max_rows: int = DEFAULT_MAX_ROWS, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.max_rows = max_rows
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> CodeExecutor:
        """Build an executor from the analyst config dict."""
        return cls(
            max_rows=config["execution_max_rows"],
            timeout_seconds=config["execution_timeout_seconds"],
        )

    def run(self, code: str, dataset: Sequence[Row]) -> ExecutionOutcome:
        """
        Execute generated code with `dataset` bound to a copy of the rows.

        Args:
            code: Python function body ending with a return
            dataset: Rows of the loaded dataset (never mutated)

        Returns:
            ExecutionOutcome with the returned value or an ExecutionFault
        """
        start_time = time.perf_counter()

        if len(dataset) > self.max_rows:
            return self._fault(
                start_time,
                "ExecutionBudgetExceeded",
                f"dataset has {len(dataset):,} rows; the in-session limit is {self.max_rows:,}",
            )

        try:
            compiled = _compile(code)
        except SyntaxError as e:
            return self._fault(start_time, "SyntaxError", f"{e.msg} (line {e.lineno})")
        except UnsafeCodeError as e:
            return self._fault(start_time, "UnsafeCode", str(e))

        namespace: dict[str, Any] = {"__builtins__": SAFE_BUILTINS}
        rows = [dict(row) for row in dataset]

        previous_trace = sys.gettrace()
        deadline = time.monotonic() + self.timeout_seconds
        try:
            exec(compiled, namespace)
            sys.settrace(_deadline_tracer(deadline))
            value = namespace[_ENTRYPOINT](rows)
        except ExecutionTimeout:
            return self._fault(
                start_time,
                "ExecutionTimeout",
                f"analysis did not finish within {self.timeout_seconds:g} seconds",
            )
        except Exception as e:
            return self._fault(start_time, type(e).__name__, str(e))
        finally:
            sys.settrace(previous_trace)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "code_execution_succeeded",
            elapsed_ms=elapsed_ms,
            rows=len(rows),
            result_type=type(value).__name__,
        )
        return ExecutionOutcome(value=value, elapsed_ms=elapsed_ms)

    def _fault(self, start_time: float, error_type: str, message: str) -> ExecutionOutcome:
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.warning(
            "code_execution_failed",
            error_type=error_type,
            error=message,
            elapsed_ms=elapsed_ms,
        )
        return ExecutionOutcome(fault=ExecutionFault(error_type=error_type, message=message), elapsed_ms=elapsed_ms)
