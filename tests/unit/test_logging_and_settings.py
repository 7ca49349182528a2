import json
import logging

import pytest

from config.settings import NarrativeSettings
from observability.logging_config import (
    NarrativeLogger,
    StructuredFormatter,
    get_narrative_logger,
)
from proc_narrative.common.logger import level_for_verbosity


class TestNarrativeLogger:
    @pytest.mark.parametrize(
        ("verbosity", "debug", "info"),
        [("off", False, False), ("simple", False, True), ("verbose", True, True)],
    )
    def test_threshold(self, verbosity, debug, info):
        logger = get_narrative_logger(verbosity)
        assert logger.isEnabledFor(logging.DEBUG) is debug
        assert logger.isEnabledFor(logging.INFO) is info
        assert logger.isEnabledFor(logging.ERROR) is True

    def test_verbosity_is_per_instance(self):
        quiet = get_narrative_logger("off")
        loud = get_narrative_logger("verbose")
        assert quiet.logger is loud.logger
        assert quiet.isEnabledFor(logging.DEBUG) is False
        assert loud.isEnabledFor(logging.DEBUG) is True

    def test_unknown_verbosity(self):
        with pytest.raises(ValueError):
            NarrativeLogger(logging.getLogger("proc_narrative.test"), "loud")

    def test_extra_fields_reach_the_formatter(self, caplog):
        logger = get_narrative_logger("verbose", request_id="r1")
        with caplog.at_level(logging.DEBUG, logger="proc_narrative"):
            logger.debug("Processing shared value", extra={"category": "size"})
        record = caplog.records[-1]
        payload = json.loads(StructuredFormatter().format(record))
        assert payload["message"] == "Processing shared value"
        assert payload["category"] == "size"
        assert payload["request_id"] == "r1"
        assert payload["level"] == "DEBUG"


def test_level_for_verbosity():
    assert level_for_verbosity("off") == "ERROR"
    assert level_for_verbosity("simple") == "INFO"
    assert level_for_verbosity("verbose") == "DEBUG"


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("NARRATIVE_EXTENDED_CONDITIONS", raising=False)
        monkeypatch.delenv("NARRATIVE_LOG_LEVEL", raising=False)
        settings = NarrativeSettings()
        assert settings.log_level == "off"
        assert settings.extended_conditions is True
        assert settings.max_reference_depth == 8
        assert settings.templates_path.is_absolute()

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("NARRATIVE_EXTENDED_CONDITIONS", "false")
        monkeypatch.setenv("NARRATIVE_LOG_LEVEL", "verbose")
        settings = NarrativeSettings()
        assert settings.extended_conditions is False
        assert settings.log_level == "verbose"

    def test_rejects_unknown_verbosity(self):
        with pytest.raises(ValueError):
            NarrativeSettings(log_level="chatty")
