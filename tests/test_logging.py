"""
Tests for logging utilities.
"""

import json
import logging

from lutstudio.utils import RenderStats, StructuredLogger, setup_console_logging


class TestStructuredLogger:

    def test_metadata_appended_as_json(self, caplog):
        slog = StructuredLogger('lutstudio.test', {'component': 'preview'})
        with caplog.at_level(logging.INFO, logger='lutstudio.test'):
            slog.info("Render published", generation=3)

        message, payload = caplog.records[-1].getMessage().split(' | ')
        assert message == "Render published"
        assert json.loads(payload) == {'component': 'preview', 'generation': 3}

    def test_plain_message_without_metadata(self, caplog):
        slog = StructuredLogger('lutstudio.test')
        with caplog.at_level(logging.WARNING, logger='lutstudio.test'):
            slog.warning("Nothing to render")
        assert caplog.records[-1].getMessage() == "Nothing to render"

    def test_bind_adds_context(self, caplog):
        slog = StructuredLogger('lutstudio.test', {'component': 'preview'})
        with caplog.at_level(logging.DEBUG, logger='lutstudio.test'):
            slog.bind(load=2).debug("Images prepared", duration=0.5)

        payload = json.loads(caplog.records[-1].getMessage().split(' | ')[1])
        assert payload == {'component': 'preview', 'load': 2, 'duration': 0.5}
        assert slog.metadata == {'component': 'preview'}


class TestRenderStats:

    def test_summary(self):
        stats = RenderStats()
        stats.add_started()
        stats.add_started()
        stats.add_result(True, 0.2)
        stats.add_result(False)
        stats.add_error('render', 'boom')

        summary = stats.get_summary()
        assert summary['renders_started'] == 2
        assert summary['renders_completed'] == 1
        assert summary['renders_superseded'] == 1
        assert summary['errors'] == 1
        assert summary['last_error'] == 'boom'
        assert summary['average_render_time'] == 0.2


class TestSetupConsoleLogging:

    def test_repeated_setup_replaces_handlers(self, tmp_path):
        root = logging.getLogger()
        level = root.level
        log_file = tmp_path / "logs" / "lutstudio.log"
        try:
            setup_console_logging("DEBUG", log_file=str(log_file))
            setup_console_logging("WARNING", log_file=str(log_file))

            ours = [h for h in root.handlers if getattr(h, '_lutstudio', False)]
            assert len(ours) == 2
            assert root.level == logging.WARNING

            logging.getLogger('lutstudio.test').warning("written to file")
            for handler in ours:
                handler.flush()
            assert "written to file" in log_file.read_text()
        finally:
            for handler in [h for h in root.handlers if getattr(h, '_lutstudio', False)]:
                root.removeHandler(handler)
                handler.close()
            root.setLevel(level)
