import inspect
import logging

import pytest

import microjson
from microjson import Config, JsonHandler, JsonLayer, Level, Logger, span


@pytest.fixture
def root_logger():
    yield logging.getLogger()
    microjson.shutdown()


def test_logger_facade_writes_message_then_fields(capture):
    log = Logger("svc.api", layer=JsonLayer(capture))
    log.info("started", port=8080, tls=False)
    v = capture.one()
    assert v["level"] == "INFO"
    assert v["target"] == "svc.api"
    assert list(v["fields"].items()) == [("message", "started"), ("port", 8080), ("tls", False)]


def test_logger_facade_records_callsite(capture):
    layer = JsonLayer(capture, Config(include_file=True, include_line_number=True))
    log = Logger("svc", layer=layer)
    line = inspect.currentframe().f_lineno + 1
    log.warn("careful")
    v = capture.one()
    assert v["level"] == "WARN"
    assert v["filename"] == __file__
    assert v["line_number"] == line


def test_logger_facade_min_level(capture):
    log = Logger("svc", layer=JsonLayer(capture), level="info")
    log.debug("hidden")
    log.trace("hidden")
    log.error("shown")
    assert [v["level"] for v in capture.lines()] == ["ERROR"]


def test_handler_maps_record_to_event(capture):
    logger = logging.getLogger("tests.handler.basic")
    logger.propagate = False
    handler = JsonHandler(JsonLayer(capture, Config(flatten_event=True)))
    logger.addHandler(handler)
    try:
        logger.warning("user %s logged in", "ann", extra={"user_id": 7, "event": "login"})
    finally:
        logger.removeHandler(handler)
    v = capture.one()
    assert v["level"] == "WARN"
    assert v["target"] == "tests.handler.basic"
    assert v["message"] == "user ann logged in"
    assert v["user_id"] == 7
    assert v["event"] == "login"
    assert "args" not in v and "msg" not in v


def test_handler_records_exception_chain(capture):
    handler = JsonHandler(JsonLayer(capture))
    logger = logging.getLogger("tests.handler.exc")
    logger.propagate = False
    logger.addHandler(handler)
    try:
        try:
            raise ValueError("bad input") from KeyError("k")
        except ValueError:
            logger.exception("request failed")
    finally:
        logger.removeHandler(handler)
    v = capture.one()
    assert v["level"] == "ERROR"
    assert v["fields"]["message"] == "request failed"
    assert v["fields"]["error"] == "bad input: 'k'"


def test_handler_reports_sink_failure_via_handle_error(monkeypatch):
    class Broken:
        def write(self, data):
            raise OSError("pipe closed")

    handler = JsonHandler(JsonLayer(Broken()))
    failures = []
    monkeypatch.setattr(handler, "handleError", failures.append)
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", (), None)
    handler.emit(record)
    assert failures == [record]


def test_handler_level_mapping():
    assert Level.from_stdlib(logging.CRITICAL) is Level.ERROR
    assert Level.from_stdlib(logging.WARNING) is Level.WARN
    assert Level.from_stdlib(5) is Level.TRACE
    assert Level.parse("warning") is Level.WARN
    with pytest.raises(ValueError):
        Level.parse("loud")


def test_init_routes_stdlib_logging(capture, root_logger):
    layer = microjson.init(writer=capture, level="debug", flatten_event=True)
    assert microjson.get_layer() is layer
    assert layer.config.flatten_event is True

    with span("job", job_id="j-1"):
        logging.getLogger("tests.init").debug("tick", extra={"n": 1})
    microjson.get_logger("tests.facade").info("done", ok=True)

    first, second = capture.lines()
    assert first["level"] == "DEBUG"
    assert first["job_id"] == "j-1"
    assert first["n"] == 1
    assert second["target"] == "tests.facade"
    assert second["ok"] is True
    assert "job_id" not in second


def test_shutdown_restores_noop(capture, root_logger):
    microjson.init(writer=capture)
    microjson.shutdown()
    logging.getLogger("tests.after").warning("dropped")
    microjson.get_logger("x").error("dropped too")
    assert capture.text() == ""
    assert not any(isinstance(h, JsonHandler) for h in root_logger.handlers)


def test_init_twice_replaces_handler(capture, root_logger):
    microjson.init(writer=capture)
    microjson.init(writer=capture)
    assert sum(isinstance(h, JsonHandler) for h in root_logger.handlers) == 1


def test_shutdown_restores_root_level(capture, root_logger):
    before = root_logger.level
    root_logger.setLevel(logging.ERROR)
    microjson.init(writer=capture, level="trace")
    assert root_logger.level == 5
    microjson.init(writer=capture, level="debug")
    assert root_logger.level == logging.DEBUG
    microjson.shutdown()
    assert root_logger.level == logging.ERROR
    root_logger.setLevel(before)
