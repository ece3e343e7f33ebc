"""
Logging pipeline: processors, sink fan-out and Datadog lifecycle.
"""

from __future__ import annotations

import logging
import threading
import time

import pytest

from logship.datadog.exceptions import LogShipError
from logship.datadog.sink import DatadogSink, SinkState
from logship.logging.core import LoggingPipeline, TemplateBoundLogger, level_number
from logship.logging.interceptors import RedirectStdLibHandler
from logship.logging.sinks import BaseSink

from fakes import FakeDeliveryClient, RecordingSink


@pytest.fixture
def pipeline(recording_sink, diagnostics):
    pipe = LoggingPipeline(level="DEBUG", sinks=[recording_sink], on_diagnostic=diagnostics)
    yield pipe
    pipe.close()


class TestProcessors:
    def test_template_args_render_message(self, pipeline, recording_sink):
        """Positional args fill the template; the template and args are kept"""
        pipeline.get_logger("auth").info("user {id} logged in", 42, request_id="r1")

        (event,) = recording_sink.events
        assert event["message"] == "user 42 logged in"
        assert event["message_template"] == "user {id} logged in"
        assert event["message_args"] == (42,)
        assert event["level"] == "info"
        assert event["logger"] == "auth"
        assert event["request_id"] == "r1"
        assert event["timestamp"].endswith("+00:00")
        assert "event" not in event

    def test_plain_message_has_no_template_keys(self, pipeline, recording_sink):
        """A message without args is passed through as-is"""
        pipeline.get_logger().info("ready")

        (event,) = recording_sink.events
        assert event["message"] == "ready"
        assert event["logger"] == "root"
        assert "message_template" not in event

    def test_level_aliases(self, recording_sink):
        """warn, critical and verbose resolve to their canonical level names"""
        pipe = LoggingPipeline(level="VERBOSE", sinks=[recording_sink])
        log = pipe.get_logger("x")
        log.warn("a")
        log.critical("b")
        log.verbose("c")

        assert [e["level"] for e in recording_sink.events] == ["warning", "fatal", "verbose"]

    def test_verbose_dropped_below_threshold(self, pipeline, recording_sink):
        """A DEBUG pipeline filters verbose events out"""
        pipeline.get_logger("x").verbose("noise")
        assert recording_sink.events == []

    def test_exception_renders_traceback(self, pipeline, recording_sink):
        """exception() logs at error level with the formatted traceback"""
        try:
            raise ValueError("bad input")
        except ValueError:
            pipeline.get_logger("x").exception("failed to parse {name}", "config.yaml")

        (event,) = recording_sink.events
        assert event["level"] == "error"
        assert event["message"] == "failed to parse config.yaml"
        assert "ValueError: bad input" in event["exception"]

    def test_level_filter(self, recording_sink):
        """Events below the pipeline level never reach a sink"""
        pipe = LoggingPipeline(level="WARNING", sinks=[recording_sink])
        log = pipe.get_logger()
        log.debug("hidden")
        log.info("hidden")
        log.error("shown")

        assert [e["message"] for e in recording_sink.events] == ["shown"]

    def test_stdlib_numeric_log(self, pipeline, recording_sink):
        """log() accepts stdlib numeric levels"""
        pipeline.get_logger().log(logging.ERROR, "numeric {0}", 1)
        assert recording_sink.events[0]["level"] == "error"
        assert recording_sink.events[0]["message"] == "numeric 1"

    def test_numeric_log_rounds_down_to_known_level(self, recording_sink):
        """Levels between the stdlib steps take the nearest lower level"""
        pipe = LoggingPipeline(level=1, sinks=[recording_sink])
        log = pipe.get_logger()
        for level in (35, 45, 55, 15, 1):
            log.log(level, "between")

        assert [e["level"] for e in recording_sink.events] == [
            "warning",
            "error",
            "fatal",
            "debug",
            "verbose",
        ]

    def test_bound_context(self, pipeline, recording_sink):
        """Initial values and bound values both appear on the event"""
        pipeline.get_logger("svc", tenant="t1").bind(user="u1").info("hello")
        assert recording_sink.events[0]["tenant"] == "t1"
        assert recording_sink.events[0]["user"] == "u1"

    def test_bound_logger_class(self, pipeline):
        """Loggers are wrapped lazily and bind to the template-aware class"""
        assert isinstance(pipeline.get_logger("svc").bind(), TemplateBoundLogger)

    def test_level_number(self):
        """Names and numbers resolve to stdlib levels; unknown names fall back to INFO"""
        assert level_number("verbose") == 5
        assert level_number("WARNING") == logging.WARNING
        assert level_number("bogus") == logging.INFO
        assert level_number(15) == 15


class TestFanOut:
    def test_failing_sink_is_reported_and_skipped(self, recording_sink, diagnostics):
        """One broken sink does not stop delivery to the others"""

        class BrokenSink(BaseSink):
            def emit(self, event_dict):
                raise OSError("disk full")

            def close(self):
                pass

        pipe = LoggingPipeline(sinks=[BrokenSink(), recording_sink], on_diagnostic=diagnostics)
        pipe.get_logger().info("still delivered")

        assert recording_sink.events[0]["message"] == "still delivered"
        (error,) = diagnostics.errors
        assert isinstance(error, LogShipError)
        assert error.code == "SINK_FAILED"

    def test_pipelines_are_isolated(self):
        """Two pipelines never share sinks"""
        first, second = RecordingSink(), RecordingSink()
        LoggingPipeline(sinks=[first]).get_logger().info("one")
        LoggingPipeline(sinks=[second]).get_logger().info("two")

        assert [e["message"] for e in first.events] == ["one"]
        assert [e["message"] for e in second.events] == ["two"]


class TestDatadogLifecycle:
    def test_initialize_without_key_logs_locally(self, pipeline, recording_sink, datadog_settings):
        """Without an API key the pipeline stays local"""
        assert pipeline.initialize(datadog_settings.model_copy(update={"api_key": None})) is False
        assert not pipeline.remote_active

        pipeline.get_logger().info("local only")
        assert recording_sink.events[-1]["message"] == "local only"

    def test_initialize_with_key_ships_logs(self, pipeline, recording_sink, datadog_settings):
        """With an API key events are shipped and the sink drains on close"""
        client = FakeDeliveryClient()

        assert pipeline.initialize(datadog_settings, client=client) is True
        assert isinstance(pipeline.datadog, DatadogSink)

        pipeline.get_logger("auth").info("user {id} logged in", 42)
        pipeline.close()

        messages = [p.message for p in client.payloads]
        assert "Datadog log shipping initialized" in messages
        assert "user 42 logged in" in messages
        assert pipeline.datadog.state is SinkState.CLOSED
        assert client.close_count == 1

    def test_verbose_ships_as_debug(self, recording_sink, datadog_settings):
        """A verbose event reaches the intake with the debug level"""
        client = FakeDeliveryClient()
        pipe = LoggingPipeline(level="VERBOSE", sinks=[recording_sink])
        pipe.initialize(datadog_settings, client=client)

        pipe.get_logger("auth").verbose("token refresh for {user}", "ada")
        pipe.close()

        (payload,) = [p for p in client.payloads if p.message == "token refresh for ada"]
        assert payload.level == "debug"

    def test_initialize_is_idempotent(self, pipeline, datadog_settings):
        """A second initialize does not add another Datadog sink"""
        client = FakeDeliveryClient()
        assert pipeline.initialize(datadog_settings, client=client) is True
        assert pipeline.initialize(datadog_settings, client=FakeDeliveryClient()) is True
        assert sum(isinstance(s, DatadogSink) for s in pipeline.sinks) == 1

    def test_initialize_basic_disables_remote(self, pipeline, datadog_settings):
        """After initialize_basic, Datadog shipping cannot be turned on"""
        assert pipeline.initialize_basic() is True
        assert pipeline.initialize(datadog_settings, client=FakeDeliveryClient()) is False

    def test_close_is_idempotent_and_stops_output(self, recording_sink):
        """Sinks close once and later events are dropped"""
        pipe = LoggingPipeline(sinks=[recording_sink])
        pipe.close()
        pipe.close()
        pipe.get_logger().info("after close")

        assert recording_sink.close_count == 1
        assert pipe.closed
        assert all(e["message"] != "after close" for e in recording_sink.events)

    def test_concurrent_close_waits_for_drain(self, datadog_settings):
        """A second closer returns only after the first has finished draining"""
        gate = threading.Event()
        client = FakeDeliveryClient(gate=gate)
        pipe = LoggingPipeline(sinks=[])
        pipe.initialize(datadog_settings, client=client)
        pipe.get_logger().info("in flight")

        first = threading.Thread(target=pipe.close)
        first.start()
        deadline = time.monotonic() + 5.0
        while pipe.datadog.state is not SinkState.DRAINING and time.monotonic() < deadline:
            time.sleep(0.01)
        assert pipe.datadog.state is SinkState.DRAINING

        states_seen = []
        second = threading.Thread(target=lambda: (pipe.close(), states_seen.append(pipe.datadog.state)))
        second.start()
        second.join(timeout=0.2)
        assert second.is_alive()

        gate.set()
        first.join(timeout=5.0)
        second.join(timeout=5.0)

        assert states_seen == [SinkState.CLOSED]
        assert client.close_count == 1


class TestInstall:
    @pytest.fixture
    def root_logger(self):
        root = logging.getLogger()
        level = root.level
        yield root
        root.handlers = [h for h in root.handlers if not isinstance(h, RedirectStdLibHandler)]
        root.setLevel(level)
        for name in ("httpx", "httpcore"):
            logging.getLogger(name).propagate = True

    def test_stdlib_records_reach_sinks(self, root_logger, pipeline, recording_sink):
        """stdlib records are rendered and routed through the pipeline"""
        pipeline.install()

        logging.getLogger("app.db.pool").warning("pool at %d%%", 90)

        event = recording_sink.events[-1]
        assert event["message"] == "pool at 90%"
        assert event["logger"] == "db.pool"
        assert event["level"] == "warning"

    def test_install_replaces_previous_redirect(self, root_logger, pipeline):
        """Installing twice leaves a single redirect handler"""
        pipeline.install()
        pipeline.install()
        assert sum(isinstance(h, RedirectStdLibHandler) for h in root_logger.handlers) == 1

    def test_transport_loggers_are_quarantined(self, root_logger, pipeline, recording_sink):
        """HTTP transport chatter never re-enters the pipeline"""
        pipeline.install()

        logging.getLogger("httpx").warning("HTTP Request: POST https://intake")

        assert all("HTTP Request" not in e["message"] for e in recording_sink.events)
        assert logging.getLogger("httpx").propagate is False


class TestDefaultPipeline:
    def test_configure_and_shutdown(self, tmp_path, recording_sink):
        """configure_logging builds the default pipeline; shutdown_logging closes it"""
        from logship.config.datadog import DatadogSettings
        from logship.config.logging import LoggingSettings
        from logship.logging import configure_logging, get_logger, shutdown_logging

        log_file = tmp_path / "app.log"
        pipe = configure_logging(
            LoggingSettings(sinks="", _env_file=None),
            DatadogSettings(_env_file=None),
            file_path=str(log_file),
            install=False,
        )
        pipe.add_sink(recording_sink)

        assert not pipe.remote_active
        get_logger("default").info("through the default pipeline")
        shutdown_logging()

        assert pipe.closed
        assert recording_sink.events[0]["message"] == "through the default pipeline"
        assert "through the default pipeline" in log_file.read_text(encoding="utf-8")
