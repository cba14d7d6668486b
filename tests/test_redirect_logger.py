"""Tests for RedirectEventLogger: record assembly and failure handling."""

from unittest.mock import MagicMock, PropertyMock

from werkzeug.wrappers import Response

from redirect_debug.config import Configuration
from redirect_debug.context import RequestContext
from redirect_debug.redirect_logger import RedirectEventLogger, location_header

CONTEXT = RequestContext(
    uri="/checkout/cart?step=2",
    path="/checkout/cart",
    method="POST",
    front_name="checkout",
    module_name="checkout",
    controller_name="CartView",
    action_name="post",
    full_action_name="checkout.cart",
    params={"step": "2"},
    referer="https://shop.test/catalog",
    user_agent="pytest-agent",
    client_ip="10.0.0.7",
)


def redirect_response(location="/customer/account/login", status=302):
    response = Response(status=status)
    if location:
        response.headers["Location"] = location
    return response


class TestBuildRecord:
    def test_base_fields(self, event_logger):
        record = RedirectEventLogger(event_logger).build_record(
            redirect_response(), Configuration(enabled=True), CONTEXT, status_code=302
        )
        assert record["status_code"] == 302
        assert record["current_url"] == "/checkout/cart?step=2"
        assert record["redirect_url"] == "/customer/account/login"
        assert record["module"] == "checkout"
        assert record["controller"] == "CartView"
        assert record["action"] == "post"
        assert record["full_action"] == "checkout.cart"
        assert len(record["timestamp"]) == len("2024-01-01 00:00:00")
        assert "request_params" not in record
        assert "full_backtrace" not in record

    def test_explicit_url_wins_over_header(self, event_logger):
        record = RedirectEventLogger(event_logger).build_record(
            redirect_response("/from-header"),
            Configuration(enabled=True),
            CONTEXT,
            redirect_url="/new-url",
        )
        assert record["redirect_url"] == "/new-url"
        assert record["status_code"] == "302 (via redirect method)"

    def test_explicit_status_uses_response_code(self, event_logger):
        record = RedirectEventLogger(event_logger).build_record(
            redirect_response(status=301), Configuration(enabled=True), CONTEXT, redirect_url="/x"
        )
        assert record["status_code"] == "301 (via redirect method)"

    def test_missing_location_is_na(self, event_logger):
        record = RedirectEventLogger(event_logger).build_record(
            redirect_response(location=None), Configuration(enabled=True), CONTEXT, status_code=301
        )
        assert record["redirect_url"] == "N/A"

    def test_unreadable_headers_are_na(self, event_logger):
        response = MagicMock(status_code=302)
        response.headers.get.side_effect = RuntimeError("headers gone")
        record = RedirectEventLogger(event_logger).build_record(
            response, Configuration(enabled=True), CONTEXT, status_code=302
        )
        assert record["redirect_url"] == "N/A"

    def test_request_data(self, event_logger):
        record = RedirectEventLogger(event_logger).build_record(
            redirect_response(),
            Configuration(enabled=True, log_request_data=True),
            CONTEXT,
            status_code=302,
        )
        assert record["request_params"] == {"step": "2"}
        assert record["request_params"] is not CONTEXT.params
        assert record["request_method"] == "POST"
        assert record["http_referer"] == "https://shop.test/catalog"
        assert record["user_agent"] == "pytest-agent"
        assert record["ip_address"] == "10.0.0.7"

    def test_full_backtrace_starts_outside_package(self, event_logger):
        record = RedirectEventLogger(event_logger).build_record(
            redirect_response(),
            Configuration(enabled=True, log_backtrace=True, backtrace_limit=3),
            CONTEXT,
            status_code=302,
        )
        frames = record["full_backtrace"]
        assert 1 <= len(frames) <= 3
        assert frames[0]["function"] == "test_full_backtrace_starts_outside_package"
        assert "args" in frames[0]

    def test_backtrace_failure_becomes_error_record(self, event_logger, monkeypatch):
        from redirect_debug import backtrace

        def broken(self, limit, with_args_and_objects=False):
            raise RuntimeError("no frames")

        monkeypatch.setattr(backtrace.StackTraceSimplifier, "capture", broken)
        record = RedirectEventLogger(event_logger).build_record(
            redirect_response(),
            Configuration(enabled=True, log_backtrace=True),
            CONTEXT,
            status_code=302,
        )
        assert record["full_backtrace"] == {"error": "no frames"}


class TestLogRedirect:
    def test_emits_info_record(self, event_logger, recorder):
        RedirectEventLogger(event_logger).log_redirect(
            redirect_response(), Configuration(enabled=True), CONTEXT, status_code=302
        )
        records = recorder.find("REDIRECT DETECTED")
        assert len(records) == 1
        assert records[0].levelname == "INFO"
        assert records[0].context["redirect_url"] == "/customer/account/login"

    def test_assembly_failure_logs_one_error(self, event_logger, recorder):
        broken_context = MagicMock()
        type(broken_context).uri = PropertyMock(side_effect=ValueError("boom"))
        RedirectEventLogger(event_logger).log_redirect(
            redirect_response(), Configuration(enabled=True), broken_context, status_code=302
        )
        assert recorder.messages() == ["Error logging redirect: boom"]

    def test_sink_failure_is_swallowed(self):
        sink = MagicMock()
        sink.info.side_effect = OSError("disk full")
        sink.error.side_effect = OSError("disk full")
        RedirectEventLogger(sink).log_redirect(
            redirect_response(), Configuration(enabled=True), CONTEXT, status_code=302
        )
        sink.error.assert_called_once()


def test_location_header_helper():
    assert location_header(redirect_response("/a")) == "/a"
    assert location_header(redirect_response(None)) is None
