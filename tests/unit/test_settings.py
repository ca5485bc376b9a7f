import json
import logging

import pytest

from pocket_ledger.config import settings as settings_module
from pocket_ledger.config.settings import ConfigLoader, Settings
from pocket_ledger.utils.logging import JSONFormatter, StructuredLogger, get_logger, set_log_level

@pytest.fixture
def clean_env(monkeypatch):
    monkeypatch.delenv("LEDGER_DB_PATH", raising=False)
    monkeypatch.delenv("LEDGER_LOG_LEVEL", raising=False)
    return monkeypatch


@pytest.mark.unit
class TestSettings:

    def test_bundled_defaults_load(self, clean_env, tmp_path):
        # Arrange: point the user override dir somewhere empty
        clean_env.setattr(settings_module, "USER_CONFIG_DIR", tmp_path)

        # Act
        settings = Settings.load()

        # Assert
        assert settings.database_path == "data/ledger.db"
        assert settings.log_level == "INFO"
        assert settings.raise_on_subscriber_failure is False

    def test_user_config_overrides_defaults(self, clean_env, tmp_path):
        # Arrange
        (tmp_path / "ledger.json").write_text(json.dumps({
            "database": {"path": "/tmp/custom.db"},
            "event_bus": {"raise_on_subscriber_failure": True},
        }))
        clean_env.setattr(settings_module, "USER_CONFIG_DIR", tmp_path)

        # Act
        settings = Settings.load()

        # Assert
        assert settings.database_path == "/tmp/custom.db"
        assert settings.raise_on_subscriber_failure is True
        assert settings.log_level == "INFO"

    def test_environment_overrides_config(self, clean_env):
        clean_env.setenv("LEDGER_DB_PATH", "/tmp/env.db")
        clean_env.setenv("LEDGER_LOG_LEVEL", "DEBUG")

        settings = Settings.load({"database": {"path": "ignored.db"}})

        assert settings.database_path == "/tmp/env.db"
        assert settings.log_level == "DEBUG"

    def test_missing_config_file(self, clean_env, tmp_path):
        clean_env.setattr(settings_module, "USER_CONFIG_DIR", tmp_path)

        with pytest.raises(FileNotFoundError, match="nope.json"):
            ConfigLoader.load_config("nope.json")


@pytest.mark.unit
class TestStructuredLogging:

    def test_formatter_emits_json_with_context(self):
        # Arrange
        record = logging.LogRecord(
            name="pocket_ledger.test",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="Account created",
            args=(),
            exc_info=None,
        )
        record.context = {"account_id": "abc", "amount": "10"}

        # Act
        payload = json.loads(JSONFormatter().format(record))

        # Assert
        assert payload["message"] == "Account created"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "pocket_ledger.test"
        assert payload["account_id"] == "abc"
        assert "timestamp" in payload

    def test_handler_is_attached_once(self):
        StructuredLogger("pocket_ledger.once")
        logger = StructuredLogger("pocket_ledger.once")

        marked = [h for h in logger.logger.handlers if getattr(h, "_ledger_handler", False)]
        assert len(marked) == 1

    def test_context_reaches_the_record(self, caplog):
        logger = get_logger("pocket_ledger.caplog")

        with caplog.at_level(logging.INFO, logger="pocket_ledger.caplog"):
            logger.info("Balance moved", account_id="xyz")

        assert caplog.records[-1].context == {"account_id": "xyz"}

    def test_set_log_level(self):
        logger = get_logger("pocket_ledger.levels")

        set_log_level("ERROR")

        assert logger.logger.level == logging.ERROR
        set_log_level("INFO")
