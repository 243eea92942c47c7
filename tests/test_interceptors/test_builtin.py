"""Tests for the interceptors shipped with vopex."""

from __future__ import annotations

import logging
import re

import pytest

from vopex.exceptions import NotFoundError
from vopex.interceptors import (
    ErrorSignatureInterceptor,
    RequestContext,
    RequestIdInterceptor,
    TimingInterceptor,
    generate_request_id,
)


class TestRequestId:
    def test_format(self) -> None:
        assert re.fullmatch(r"req-1700000000000-[0-9a-z]{9}", generate_request_id(1_700_000_000_000))

    def test_ids_differ(self) -> None:
        assert generate_request_id(1) != generate_request_id(1)

    def test_sets_header_once(self) -> None:
        ctx = RequestContext(headers={})
        RequestIdInterceptor().on_request(ctx)
        first = ctx.headers["X-Request-Id"]
        RequestIdInterceptor().on_request(ctx)
        assert ctx.headers["X-Request-Id"] == first

    def test_keeps_caller_id(self) -> None:
        ctx = RequestContext(headers={"X-Request-Id": "mine"})
        RequestIdInterceptor().on_request(ctx)
        assert ctx.headers["X-Request-Id"] == "mine"


class TestTiming:
    def test_records_duration(self, caplog: pytest.LogCaptureFixture) -> None:
        ticks = iter([10.0, 10.25])
        timing = TimingInterceptor(clock=lambda: next(ticks))
        ctx = RequestContext(url="https://crm.example.com/api/leads", response_body=[1])

        timing.on_request(ctx)
        with caplog.at_level(logging.INFO, logger="vopex.interceptors.builtin"):
            assert timing.on_response(ctx) == [1]

        assert timing.durations[ctx.url] == pytest.approx(250.0)
        assert "took 250ms" in caplog.text

    def test_error_also_finishes(self) -> None:
        ticks = iter([0.0, 1.0])
        timing = TimingInterceptor(clock=lambda: next(ticks))
        ctx = RequestContext(url="u")
        timing.on_request(ctx)
        timing.on_error(RuntimeError("x"), ctx)
        timing.on_response(ctx)
        assert timing.durations == {"u": pytest.approx(1000.0)}


class TestErrorSignature:
    def test_http_error_uses_status(self) -> None:
        error = NotFoundError("HTTP 404: gone", status_code=404)
        assert ErrorSignatureInterceptor.signature(error) == "404-HTTP 404: gone"

    def test_other_error_uses_class_name(self) -> None:
        assert ErrorSignatureInterceptor.signature(ValueError("bad")) == "ValueError-bad"

    def test_logs_error(self, caplog: pytest.LogCaptureFixture) -> None:
        ctx = RequestContext(method="GET", url="u")
        with caplog.at_level(logging.ERROR):
            ErrorSignatureInterceptor().on_error(ValueError("bad"), ctx)
        assert "ValueError-bad" in caplog.text
