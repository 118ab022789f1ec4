"""End-to-end tests of the FileCache middleware inside a pipeline.

These follow a request through the whole chain: an upstream middleware sets
the cache name, FileCache sits in the middle, and a terminal middleware plays
the expensive handler.
"""

from __future__ import annotations

import gzip
import json
import os
import time
from pathlib import Path

import pytest

from filecache.cache import FileCache
from filecache.context import RequestContext
from filecache.exceptions import ConfigurationError
from filecache.http import http_date, parse_http_date
from filecache.pipeline import Pipeline
from helpers import (
    body_bytes,
    disable_caching,
    is_gzipped,
    large_body,
    respond_with,
    run,
    set_cache_name,
    small_body,
)


def _request(pipeline: Pipeline, headers: dict[str, str] | None = None):
    """Run one request and return (ctx, materialised body bytes)."""

    async def _go():
        ctx = await pipeline.handle(RequestContext(headers=headers or {}))
        data = await body_bytes(ctx) if ctx.body is not None else b""
        return ctx, data

    return run(_go())


def _prime(cache_dir: Path, key: str, payload, compressed: bool) -> None:
    raw = json.dumps(payload).encode()
    if compressed:
        (cache_dir / f"{key}.gz").write_bytes(gzip.compress(raw))
    else:
        (cache_dir / key).write_bytes(raw)


# ------------------------------------------------------------------ #
# Construction
# ------------------------------------------------------------------ #


class TestConstruction:
    def test_keyword_overrides(self, cache_dir: Path) -> None:
        cache = FileCache(folder=cache_dir, gzip=False)
        assert cache.config.gzip is False
        assert cache.config.folder == cache_dir

    def test_overrides_applied_on_top_of_config(self, make_config) -> None:
        cache = FileCache(make_config(ttl_seconds=5), delegate=True)
        assert cache.config.ttl_seconds == 5
        assert cache.config.delegate is True

    def test_missing_folder_fails_fast(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="does not exist"):
            FileCache(folder=tmp_path / "nope")

    def test_invalid_override_is_configuration_error(self, cache_dir: Path) -> None:
        with pytest.raises(ConfigurationError):
            FileCache(folder=cache_dir, gzip_threshold=-1)


# ------------------------------------------------------------------ #
# Miss: produce and store
# ------------------------------------------------------------------ #


class TestMiss:
    def test_caches_large_body_gzipped(self, make_config, cache_dir: Path) -> None:
        pipeline = Pipeline([set_cache_name("shared"), FileCache(make_config()), respond_with(large_body())])
        ctx, data = _request(pipeline)

        stored = cache_dir / "shared.gz"
        assert stored.exists()
        assert is_gzipped(stored.read_bytes())
        assert json.loads(data) == large_body()
        assert ctx.effective_status == 200

    def test_caches_uncompressed_when_gzip_disabled(self, make_config, cache_dir: Path) -> None:
        pipeline = Pipeline(
            [set_cache_name("plain"), FileCache(make_config(gzip=False)), respond_with(large_body())]
        )
        _request(pipeline)
        assert (cache_dir / "plain").exists()
        assert not (cache_dir / "plain.gz").exists()
        assert not is_gzipped((cache_dir / "plain").read_bytes())

    def test_caches_uncompressed_below_threshold(self, make_config, cache_dir: Path) -> None:
        pipeline = Pipeline([set_cache_name("small"), FileCache(make_config()), respond_with(small_body())])
        _request(pipeline)
        assert json.loads((cache_dir / "small").read_bytes()) == small_body()
        assert not (cache_dir / "small.gz").exists()

    def test_stamps_approximate_freshness_headers(self, make_config) -> None:
        pipeline = Pipeline(
            [set_cache_name("hdr"), FileCache(make_config(ttl_seconds=120)), respond_with(small_body())]
        )
        before = time.time()
        ctx, _ = _request(pipeline)

        last_modified = parse_http_date(ctx.response_headers["last-modified"])
        expires = parse_http_date(ctx.response_headers["expires"])
        assert last_modified >= int(before) - 1
        assert expires - last_modified == pytest.approx(120, abs=1)

    def test_caching_disabled_downstream_writes_nothing(self, make_config, cache_dir: Path) -> None:
        pipeline = Pipeline(
            [set_cache_name("off"), FileCache(make_config()), respond_with(large_body(), caching=False)]
        )
        ctx, data = _request(pipeline)
        assert list(cache_dir.iterdir()) == []
        assert json.loads(data) == large_body()
        assert "last-modified" not in ctx.response_headers

    def test_caching_disabled_upstream_writes_nothing(self, make_config, cache_dir: Path) -> None:
        pipeline = Pipeline(
            [set_cache_name("off"), disable_caching(), FileCache(make_config()), respond_with(small_body())]
        )
        _request(pipeline)
        assert list(cache_dir.iterdir()) == []

    def test_empty_response_not_cached(self, make_config, cache_dir: Path) -> None:
        pipeline = Pipeline([set_cache_name("empty"), FileCache(make_config())])
        ctx, _ = _request(pipeline)
        assert list(cache_dir.iterdir()) == []
        assert ctx.effective_status == 404

    def test_error_status_is_cached(self, make_config, cache_dir: Path) -> None:
        async def failing(ctx, call_next):
            ctx.status = 500
            ctx.body = {"error": "boom"}

        pipeline = Pipeline([set_cache_name("err"), FileCache(make_config()), failing])
        ctx, _ = _request(pipeline)
        assert ctx.status == 500
        assert json.loads((cache_dir / "err").read_bytes()) == {"error": "boom"}
        assert "last-modified" in ctx.response_headers

    def test_expired_entry_is_regenerated(self, make_config, cache_dir: Path) -> None:
        _prime(cache_dir, "old", large_body(), compressed=True)
        calls: list = []
        pipeline = Pipeline(
            [
                set_cache_name("old"),
                FileCache(make_config(ttl_seconds=-1)),
                respond_with(small_body(), calls=calls, caching=False),
            ]
        )
        _, data = _request(pipeline)
        assert len(calls) == 1
        assert json.loads(data) == small_body()

    def test_missing_key_fields_propagate(self, make_config) -> None:
        pipeline = Pipeline([FileCache(make_config()), respond_with(small_body())])
        with pytest.raises(ConfigurationError):
            _request(pipeline)


# ------------------------------------------------------------------ #
# Hit: serve from disk
# ------------------------------------------------------------------ #


class TestHit:
    def test_second_request_served_gzipped_without_downstream(
        self, make_config, cache_dir: Path
    ) -> None:
        calls: list = []
        config = make_config()
        pipeline = Pipeline([set_cache_name("shared"), FileCache(config), respond_with(large_body(), calls)])

        _request(pipeline)
        ctx, data = _request(pipeline, headers={"Accept-Encoding": "gzip"})

        assert len(calls) == 1
        assert ctx.response_headers["content-encoding"] == "gzip"
        assert ctx.compress is False
        assert json.loads(gzip.decompress(data)) == large_body()

    def test_identity_hit_repeats_miss_bytes(self, make_config, cache_dir: Path) -> None:
        pipeline = Pipeline([set_cache_name("daily"), FileCache(make_config()), respond_with(large_body())])

        _, first = _request(pipeline, headers={"Accept-Encoding": "identity"})
        _, second = _request(pipeline, headers={"Accept-Encoding": "identity"})

        assert second == first
        assert second == gzip.decompress((cache_dir / "daily.gz").read_bytes())

    def test_identity_client_gets_uncompressed_body(self, make_config, cache_dir: Path) -> None:
        _prime(cache_dir, "shared", large_body(), compressed=True)
        calls: list = []
        pipeline = Pipeline([set_cache_name("shared"), FileCache(make_config()), respond_with({}, calls)])

        ctx, data = _request(pipeline, headers={"Accept-Encoding": "identity"})
        assert calls == []
        assert "content-encoding" not in ctx.response_headers
        assert not is_gzipped(data)
        assert json.loads(data) == large_body()

    def test_caching_disabled_upstream_skips_read(self, make_config, cache_dir: Path) -> None:
        _prime(cache_dir, "shared", large_body(), compressed=True)
        pipeline = Pipeline(
            [set_cache_name("shared"), disable_caching(), FileCache(make_config()), respond_with(small_body())]
        )
        ctx, data = _request(pipeline)
        assert json.loads(data) == small_body()
        # nothing overwritten either
        assert json.loads(gzip.decompress((cache_dir / "shared.gz").read_bytes())) == large_body()
        assert not (cache_dir / "shared").exists()

    def test_delegate_mode_runs_downstream_with_cached_value(
        self, make_config, cache_dir: Path
    ) -> None:
        _prime(cache_dir, "shared", large_body(), compressed=True)

        async def augment(ctx, call_next):
            ctx.caching = False
            ctx.body = {"test": "test", "large_body": ctx.body}

        pipeline = Pipeline([set_cache_name("shared"), FileCache(make_config(delegate=True)), augment])
        ctx, _ = _request(pipeline, headers={"Accept-Encoding": "gzip"})
        assert ctx.body["test"] == "test"
        assert ctx.body["large_body"] == large_body()

    def test_direct_hit_sets_configured_type(self, make_config, cache_dir: Path) -> None:
        (cache_dir / "page").write_bytes(b"hello")
        pipeline = Pipeline([set_cache_name("page"), FileCache(make_config(type="text"))])
        ctx, data = _request(pipeline)
        assert ctx.content_type.startswith("text/plain")
        assert data == b"hello"

    def test_if_modified_since_current_gives_304(self, make_config, cache_dir: Path) -> None:
        _prime(cache_dir, "shared", small_body(), compressed=False)
        calls: list = []
        pipeline = Pipeline([set_cache_name("shared"), FileCache(make_config()), respond_with({}, calls)])

        ctx, data = _request(pipeline, headers={"If-Modified-Since": http_date(time.time())})
        assert ctx.status == 304
        assert data == b""
        assert calls == []

    def test_if_modified_since_old_gives_body(self, make_config, cache_dir: Path) -> None:
        _prime(cache_dir, "shared", small_body(), compressed=False)
        pipeline = Pipeline([set_cache_name("shared"), FileCache(make_config())])

        ctx, data = _request(pipeline, headers={"If-Modified-Since": http_date(time.time() - 61)})
        assert ctx.effective_status == 200
        assert json.loads(data) == small_body()

    def test_malformed_entry_falls_through_to_downstream(
        self, make_config, cache_dir: Path
    ) -> None:
        (cache_dir / "bad.gz").write_bytes(gzip.compress(b"{oops"))
        calls: list = []
        pipeline = Pipeline(
            [set_cache_name("bad"), FileCache(make_config()), respond_with(small_body(), calls)]
        )
        ctx, data = _request(pipeline, headers={"Accept-Encoding": "identity"})
        assert calls == [None]
        assert json.loads(data) == small_body()

    def test_entry_fresh_within_ttl_and_expired_after(self, make_config, cache_dir: Path) -> None:
        _prime(cache_dir, "abc", small_body(), compressed=False)
        written = time.time() - 30
        os.utime(cache_dir / "abc", (written, written))

        calls: list = []
        fresh = Pipeline(
            [set_cache_name("abc"), FileCache(make_config(ttl_seconds=60)), respond_with({}, calls)]
        )
        _request(fresh)
        assert calls == []

        stale = Pipeline(
            [set_cache_name("abc"), FileCache(make_config(ttl_seconds=29)), respond_with({"n": 2}, calls)]
        )
        _request(stale)
        assert calls == [None]
        assert json.loads((cache_dir / "abc").read_bytes()) == {"n": 2}
