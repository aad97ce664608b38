"""Checks for public API invocation instrumentation.

Behavioral tests cover the decorator for plain and ``async def`` methods; a
static check requires every method of the cache service contract to be
decorated in its implementation.
"""

from __future__ import annotations

import ast
import asyncio
import logging
from pathlib import Path

import pytest

from packages.shelf_shared.errors import ErrorCategory, ErrorDetail
from packages.shelf_shared.logging import (
    CompletionContext,
    InvocationContext,
    get_context,
    log_context,
    public_api_instrumented,
)

_REPO_ROOT = Path(__file__).resolve().parents[2]
_SERVICE_ROOT = _REPO_ROOT / "services" / "state" / "novel_cache"


class _RecordingConcern:
    def __init__(self) -> None:
        self.invocations: list[InvocationContext] = []
        self.completions: list[CompletionContext] = []

    def on_invocation(self, context: InvocationContext) -> None:
        self.invocations.append(context)

    def on_completion(self, context: CompletionContext) -> None:
        self.completions.append(context)


class _ExplodingConcern:
    def on_invocation(self, context: InvocationContext) -> None:
        raise RuntimeError("hook broke")

    def on_completion(self, context: CompletionContext) -> None:
        raise RuntimeError("hook broke")


class _Result:
    def __init__(self, *, ok: bool, errors: list[ErrorDetail]) -> None:
        self.ok = ok
        self.errors = errors


def test_async_method_reports_references_and_success() -> None:
    """Async methods are awaited and id fields become invocation references."""
    concern = _RecordingConcern()

    @public_api_instrumented(
        component_id="service_test", id_fields=("key",), concerns=[concern]
    )
    async def get_value(*, key: str) -> str:
        return f"value:{key}"

    assert asyncio.run(get_value(key="novels_v2")) == "value:novels_v2"

    assert concern.invocations[0].api_name == "get_value"
    assert concern.invocations[0].references == {"key": "novels_v2"}
    completion = concern.completions[0]
    assert completion.success is True
    assert completion.errors == []
    assert completion.duration_ms >= 0


def test_result_ok_flag_and_errors_drive_completion() -> None:
    """A result with ok=False is reported as failed with code-prefixed errors."""
    concern = _RecordingConcern()
    detail = ErrorDetail(
        code="CACHE_UNAVAILABLE",
        message="cache is unavailable",
        category=ErrorCategory.DEPENDENCY,
        retryable=True,
    )

    @public_api_instrumented(component_id="service_test", concerns=[concern])
    def set_value() -> _Result:
        return _Result(ok=False, errors=[detail])

    set_value()

    completion = concern.completions[0]
    assert completion.success is False
    assert completion.errors == ["CACHE_UNAVAILABLE: cache is unavailable"]


def test_exceptions_are_reported_and_reraised() -> None:
    """Exceptions propagate after a failed completion is emitted."""
    concern = _RecordingConcern()

    @public_api_instrumented(component_id="service_test", concerns=[concern])
    async def explode() -> None:
        raise KeyError("missing")

    with pytest.raises(KeyError):
        asyncio.run(explode())

    completion = concern.completions[0]
    assert completion.success is False
    assert completion.errors[0].startswith("KeyError")


def test_failing_concern_does_not_break_the_call(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """A broken hook is logged and the wrapped method still returns."""
    logger = logging.getLogger("tests.public_api")

    @public_api_instrumented(
        component_id="service_test",
        concerns=[_ExplodingConcern()],
        logger=logger,
    )
    def ping() -> str:
        return "pong"

    with caplog.at_level(logging.DEBUG, logger="tests.public_api"):
        assert ping() == "pong"

    messages = [record.getMessage() for record in caplog.records]
    assert "Public API completion" in messages
    assert messages.count("Public API instrumentation concern failed") == 2


def test_decorator_requires_a_concern() -> None:
    """A decorator without logger or concerns is rejected."""
    with pytest.raises(ValueError):
        public_api_instrumented(component_id="service_test")


def test_log_context_is_restored_after_block() -> None:
    """log_context binds fields only for the duration of its block."""
    with log_context({"key": "featured_v2", "ttl_seconds": 60, "skip": None}):
        context = get_context()
        assert context["key"] == "featured_v2"
        assert context["ttl_seconds"] == "60"
        assert "skip" not in context
    assert "key" not in get_context()


def test_cache_service_public_methods_are_instrumented() -> None:
    """Every service operation other than aclose is decorated in the implementation."""
    contract = _public_methods(_SERVICE_ROOT / "service.py", "NovelCacheService")
    decorated = _public_methods(
        _SERVICE_ROOT / "implementation.py",
        "DefaultNovelCacheService",
        decorated_only=True,
    )

    assert contract, "service contract declares no public methods"
    missing = sorted(contract - decorated - {"aclose"})
    assert not missing, f"Missing @public_api_instrumented on: {missing}"


def _public_methods(
    file_path: Path, class_name: str, *, decorated_only: bool = False
) -> set[str]:
    """Return public method names of one class, optionally only instrumented ones."""
    module = ast.parse(file_path.read_text(encoding="utf-8"))
    names: set[str] = set()
    for node in module.body:
        if not isinstance(node, ast.ClassDef) or node.name != class_name:
            continue
        for child in node.body:
            if not isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef)):
                continue
            if child.name.startswith("_"):
                continue
            if decorated_only and not _has_public_api_instrumented(child):
                continue
            names.add(child.name)
    return names


def _has_public_api_instrumented(
    node: ast.FunctionDef | ast.AsyncFunctionDef,
) -> bool:
    for decorator in node.decorator_list:
        target = decorator.func if isinstance(decorator, ast.Call) else decorator
        if isinstance(target, ast.Name) and target.id == "public_api_instrumented":
            return True
        if (
            isinstance(target, ast.Attribute)
            and target.attr == "public_api_instrumented"
        ):
            return True
    return False
