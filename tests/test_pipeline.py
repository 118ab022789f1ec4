"""Tests for the async middleware pipeline."""

from __future__ import annotations

import pytest

from filecache.context import RequestContext
from filecache.exceptions import InvalidUsageError
from filecache.pipeline import Pipeline
from helpers import run


def _recorder(name: str, log: list[str]):
    async def _mw(ctx: RequestContext, call_next) -> None:
        log.append(f"{name}:in")
        await call_next()
        log.append(f"{name}:out")

    return _mw


class TestPipeline:
    def test_runs_middleware_onion_style(self) -> None:
        log: list[str] = []
        pipeline = Pipeline().use(_recorder("a", log)).use(_recorder("b", log))
        run(pipeline.handle(RequestContext()))
        assert log == ["a:in", "b:in", "b:out", "a:out"]

    def test_constructor_accepts_initial_chain(self) -> None:
        log: list[str] = []
        pipeline = Pipeline([_recorder("a", log)])
        assert len(pipeline) == 1
        run(pipeline.handle(RequestContext()))
        assert log == ["a:in", "a:out"]

    def test_short_circuit_skips_downstream(self) -> None:
        log: list[str] = []

        async def stop(ctx, call_next):
            ctx.body = "early"

        pipeline = Pipeline([stop, _recorder("never", log)])
        ctx = run(pipeline.handle(RequestContext()))
        assert ctx.body == "early"
        assert log == []

    def test_empty_pipeline_returns_context(self) -> None:
        ctx = RequestContext()
        assert run(Pipeline().handle(ctx)) is ctx

    def test_calling_next_twice_is_an_error(self) -> None:
        async def twice(ctx, call_next):
            await call_next()
            await call_next()

        with pytest.raises(InvalidUsageError, match="multiple times"):
            run(Pipeline([twice]).handle(RequestContext()))

    def test_use_rejects_non_callables(self) -> None:
        with pytest.raises(InvalidUsageError):
            Pipeline().use("not a middleware")  # type: ignore[arg-type]

    def test_errors_propagate(self) -> None:
        async def broken(ctx, call_next):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            run(Pipeline([broken]).handle(RequestContext()))
