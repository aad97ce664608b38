"""Instrumentation decorator for cache service entry points.

``public_api_instrumented`` wraps one method (plain or ``async def``) and
reports a start and a completion event to each registered concern. Logging is
the only concern shipped here; others plug in through the same two hooks.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from functools import wraps
from time import perf_counter
from typing import Any, Callable, Mapping, Protocol, Sequence

from . import fields
from .context import log_context


@dataclass(frozen=True)
class InvocationContext:
    """What was called, plus correlation references such as the cache key."""

    component_id: str
    api_name: str
    references: Mapping[str, str]

    def log_fields(self) -> dict[str, object]:
        return {
            fields.EVENT: fields.PUBLIC_API_INVOCATION_EVENT,
            fields.COMPONENT_ID: self.component_id,
            fields.API_NAME: self.api_name,
            **self.references,
        }


@dataclass(frozen=True)
class CompletionContext:
    """How one call ended."""

    invocation: InvocationContext
    success: bool
    duration_ms: float
    errors: list[str]


class PublicApiInstrumentationConcern(Protocol):
    """Two hooks called around every instrumented method."""

    def on_invocation(self, context: InvocationContext) -> None: ...

    def on_completion(self, context: CompletionContext) -> None: ...


class PublicApiLoggingConcern:
    """Log starts at DEBUG and completions at INFO, or WARNING on failure."""

    def __init__(self, *, logger: Any) -> None:
        self._logger = logger

    def on_invocation(self, context: InvocationContext) -> None:
        with log_context(context.log_fields()):
            self._logger.debug("Public API invocation")

    def on_completion(self, context: CompletionContext) -> None:
        payload = context.invocation.log_fields()
        payload[fields.EVENT] = fields.PUBLIC_API_COMPLETION_EVENT
        payload[fields.SUCCESS] = context.success
        payload[fields.DURATION_MS] = context.duration_ms
        payload[fields.ERRORS] = context.errors
        with log_context(payload):
            log = self._logger.info if context.success else self._logger.warning
            log("Public API completion")


class _Dispatcher:
    """Fan hook calls out to concerns; a failing hook never fails the call."""

    def __init__(
        self,
        concerns: Sequence[PublicApiInstrumentationConcern],
        logger: Any | None,
    ) -> None:
        self._concerns = tuple(concerns)
        self._logger = logger

    def started(self, context: InvocationContext) -> None:
        for concern in self._concerns:
            try:
                concern.on_invocation(context)
            except Exception as exc:  # noqa: BLE001
                self._hook_failed("invocation", concern, exc, context)

    def completed(self, context: CompletionContext) -> None:
        for concern in self._concerns:
            try:
                concern.on_completion(context)
            except Exception as exc:  # noqa: BLE001
                self._hook_failed("completion", concern, exc, context.invocation)

    def _hook_failed(
        self,
        stage: str,
        concern: PublicApiInstrumentationConcern,
        exc: Exception,
        invocation: InvocationContext,
    ) -> None:
        if self._logger is None:
            return
        with log_context(
            {
                fields.EVENT: fields.PUBLIC_API_INSTRUMENTATION_FAILURE_EVENT,
                fields.COMPONENT_ID: invocation.component_id,
                fields.API_NAME: invocation.api_name,
                fields.STAGE: stage,
                fields.CONCERN: type(concern).__name__,
                fields.ERRORS: [f"{type(exc).__name__}: {exc}"],
            }
        ):
            self._logger.warning("Public API instrumentation concern failed")


def public_api_instrumented(
    *,
    component_id: str,
    api_name: str | None = None,
    id_fields: tuple[str, ...] = (),
    concerns: Sequence[PublicApiInstrumentationConcern] | None = None,
    logger: Any | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Instrument one public method.

    Passing ``logger`` prepends a ``PublicApiLoggingConcern``. Keyword
    arguments named in ``id_fields`` are copied into the invocation references
    when they are non-empty. A result exposing ``ok``/``errors`` decides the
    reported success; a raised exception is reported and re-raised.
    """
    registered = list(concerns or ())
    if logger is not None:
        registered.insert(0, PublicApiLoggingConcern(logger=logger))
    if not registered:
        raise ValueError("public_api_instrumented requires at least one concern")
    dispatcher = _Dispatcher(registered, logger)

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        name = api_name or func.__name__

        def begin(kwargs: Mapping[str, Any]) -> tuple[InvocationContext, float]:
            invocation = InvocationContext(
                component_id=component_id,
                api_name=name,
                references={
                    field: str(kwargs[field])
                    for field in id_fields
                    if kwargs.get(field) not in (None, "")
                },
            )
            dispatcher.started(invocation)
            return invocation, perf_counter()

        def end(
            invocation: InvocationContext,
            started: float,
            outcome: tuple[bool, list[str]],
        ) -> None:
            success, errors = outcome
            dispatcher.completed(
                CompletionContext(
                    invocation=invocation,
                    success=success,
                    duration_ms=round((perf_counter() - started) * 1000.0, 3),
                    errors=errors,
                )
            )

        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                invocation, started = begin(kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as exc:
                    end(invocation, started, _exception_outcome(exc))
                    raise
                end(invocation, started, _result_outcome(result))
                return result

            return async_wrapper

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            invocation, started = begin(kwargs)
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                end(invocation, started, _exception_outcome(exc))
                raise
            end(invocation, started, _result_outcome(result))
            return result

        return wrapper

    return decorator


def _exception_outcome(exc: Exception) -> tuple[bool, list[str]]:
    return False, [f"{type(exc).__name__}: {exc}"]


def _result_outcome(result: object) -> tuple[bool, list[str]]:
    """Read success from ``result.ok`` when present, else from its errors."""
    errors = [_error_line(item) for item in _as_list(getattr(result, "errors", None))]
    errors = [line for line in errors if line]
    ok = getattr(result, "ok", None)
    if isinstance(ok, bool):
        return ok, errors
    return not errors, errors


def _as_list(value: object) -> list[object]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _error_line(item: object) -> str:
    if isinstance(item, Mapping):
        code, message = item.get("code"), item.get("message")
    else:
        code, message = getattr(item, "code", None), getattr(item, "message", None)
    if not message:
        return ""
    return f"{code}: {message}" if code else str(message)
