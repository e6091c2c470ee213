"""Tests for deferred message objects and the styled record factory."""

import logging

import pytest

from lazylog.demo import RenderProbe
from lazylog.messages import (
    BraceMessage,
    DollarMessage,
    LazyMessage,
    StyledLogRecord,
    StyleAdapter,
    install_record_style,
    restore_record_factory,
    use_record_style,
)
from lazylog.styles import FormatStyle


class TestLazyMessage:
    """Tests for LazyMessage rendering."""

    def test_renders_on_str(self):
        """Test that str() performs the interpolation."""
        message = LazyMessage("Hello, {name}!", kwargs={"name": "World"})
        assert str(message) == "Hello, World!"

    def test_not_cached(self):
        """Test that every str() call renders again."""
        message = LazyMessage("{}", ("x",))
        str(message)
        str(message)
        assert message.render_count == 2

    def test_construction_does_not_render(self):
        """Test that creating the message leaves arguments untouched."""
        probe = RenderProbe()
        message = LazyMessage("{}", (probe,))
        assert probe.renders == 0
        assert message.render_count == 0

    def test_explicit_style(self):
        """Test a percent-style LazyMessage."""
        assert str(LazyMessage("%s=%d", ("x", 3), style="%")) == "x=3"

    def test_brace_message(self):
        """Test the brace-fixed subclass."""
        assert str(BraceMessage("{0} {x}", "a", x="b")) == "a b"

    def test_dollar_message(self):
        """Test the dollar-fixed subclass."""
        assert str(DollarMessage("$who", who="Ada")) == "Ada"

    def test_repr_does_not_render(self):
        """Test that repr shows the template without formatting."""
        message = BraceMessage("{}", "x")
        assert "'{}'" in repr(message)
        assert message.render_count == 0


class TestStyleAdapter:
    """Tests for StyleAdapter."""

    def test_brace_message_logged(self, recording_logger):
        """Test that an enabled call is formatted by the handler."""
        logger, handler = recording_logger
        log = StyleAdapter(logger)

        log.info("Hello, {}! Task {task} started", "World", task="sync")

        assert handler.messages == ["Hello, World! Task sync started"]
        assert isinstance(handler.records[0].msg, LazyMessage)

    def test_dollar_style(self, recording_logger):
        """Test $-templates through the adapter."""
        logger, handler = recording_logger
        StyleAdapter(logger, style="$").warning("Hello, $name!", name="Ada")
        assert handler.messages == ["Hello, Ada!"]

    def test_below_threshold_never_formats(self, recording_logger):
        """Test that suppressed calls never touch their arguments."""
        logger, handler = recording_logger
        probe = RenderProbe()

        StyleAdapter(logger).debug("value={}", probe)

        assert handler.records == []
        assert probe.renders == 0

    def test_logging_kwargs_not_treated_as_fields(self, recording_logger):
        """Test that exc_info and extra reach the record."""
        logger, handler = recording_logger
        log = StyleAdapter(logger)

        try:
            raise RuntimeError("boom")
        except RuntimeError:
            log.error("Failed {step}", step="load", exc_info=True, extra={"job": 7})

        record = handler.records[0]
        assert record.getMessage() == "Failed load"
        assert record.exc_info[0] is RuntimeError
        assert record.job == 7

    def test_record_points_at_caller(self, recording_logger):
        """Test that the record's location is the calling function."""
        logger, handler = recording_logger
        log = StyleAdapter(logger)
        log.info("where am I")
        log.log(logging.WARNING, "and now?")
        assert [r.funcName for r in handler.records] == ["test_record_points_at_caller"] * 2

    @pytest.mark.parametrize(
        "method", ["debug", "info", "warning", "error", "exception", "critical"]
    )
    def test_field_named_msg(self, recording_logger, method):
        """Test that a template field may share the name of the message parameter."""
        logger, handler = recording_logger
        logger.setLevel(logging.DEBUG)

        getattr(StyleAdapter(logger), method)("Got {msg}", msg="hi")

        assert [r.getMessage() for r in handler.records] == ["Got hi"]

    def test_exception_attaches_traceback(self, recording_logger):
        """Test that exception() logs at ERROR with exc_info."""
        logger, handler = recording_logger
        try:
            raise ValueError("bad")
        except ValueError:
            StyleAdapter(logger).exception("Step {n} failed", n=2)

        record = handler.records[0]
        assert record.levelno == logging.ERROR
        assert record.exc_info[0] is ValueError
        assert record.getMessage() == "Step 2 failed"


class TestStyledRecordFactory:
    """Tests for StyledLogRecord and the record factory helpers."""

    def test_brace_records(self, recording_logger):
        """Test that plain logger calls accept {} templates inside the block."""
        logger, handler = recording_logger
        with use_record_style("{"):
            logger.info("Hello, {}!", "World")
        assert handler.messages == ["Hello, World!"]
        assert isinstance(handler.records[0], StyledLogRecord)

    def test_mapping_argument(self, recording_logger):
        """Test that a single dict argument is used as the mapping."""
        logger, handler = recording_logger
        with use_record_style(FormatStyle.BRACE):
            logger.info("Hello, {name}!", {"name": "Ada"})
        assert handler.messages == ["Hello, Ada!"]

    def test_percent_records_behave_like_default(self, recording_logger):
        """Test that percent style keeps the stdlib behavior."""
        logger, handler = recording_logger
        with use_record_style("%"):
            logger.info("%s%%", 50)
            logger.info("100%")
        assert handler.messages == ["50%", "100%"]

    def test_factory_restored(self):
        """Test that the previous factory is reinstated on exit."""
        original = logging.getLogRecordFactory()
        with use_record_style("$"):
            assert logging.getLogRecordFactory() is not original
        assert logging.getLogRecordFactory() is original

    def test_factory_restored_on_error(self):
        """Test that an exception inside the block still restores the factory."""
        original = logging.getLogRecordFactory()
        with pytest.raises(ZeroDivisionError):
            with use_record_style("{"):
                1 / 0
        assert logging.getLogRecordFactory() is original

    def test_install_and_restore(self):
        """Test the non-context-manager helpers nest."""
        original = logging.getLogRecordFactory()
        install_record_style("{")
        install_record_style("$")
        restore_record_factory()
        restore_record_factory()
        assert logging.getLogRecordFactory() is original

    def test_restore_without_install(self):
        """Test restore with nothing installed raises RuntimeError."""
        with pytest.raises(RuntimeError):
            restore_record_factory()
