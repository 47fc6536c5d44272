"""Tests for configuration, bootstrap wiring and logging."""

import io
import json
import logging
import sys
from decimal import Decimal
from typing import Iterator
from unittest.mock import patch

import pytest

from instant_payments.accounts import AccountService
from instant_payments.bootstrap import build_notifier, build_services, build_storage
from instant_payments.config import (
    TOPIC_TRANSACTION_NOTIFICATIONS,
    KafkaConfig,
    NotificationConfig,
    PaymentsConfig,
    PostgresConfig,
)
from instant_payments.engine import TransferEngine
from instant_payments.exceptions import ConfigurationError
from instant_payments.logging import JsonFormatter, setup_logging
from instant_payments.models import TransferRequest
from instant_payments.notify import (
    ConsoleNotifier,
    NotificationDispatcher,
    NullNotifier,
    RecordingNotifier,
)
from instant_payments.store import InMemoryStorage

ENV_VARS = [
    "KAFKA_BOOTSTRAP_SERVERS",
    "KAFKA_ACKS",
    "POSTGRES_HOST",
    "POSTGRES_PORT",
    "POSTGRES_DB",
    "POSTGRES_USER",
    "POSTGRES_PASSWORD",
    "POSTGRES_LOCK_TIMEOUT_MS",
    "NOTIFICATION_TOPIC",
    "NOTIFIER",
    "STORAGE_BACKEND",
    "LOG_LEVEL",
    "LOG_FORMAT",
]


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def restore_logging() -> Iterator[None]:
    """Put the root and package loggers back after setup_logging."""
    root = logging.getLogger()
    package = logging.getLogger("instant_payments")
    saved = (root.level, root.handlers[:], package.level)
    yield
    root.setLevel(saved[0])
    root.handlers[:] = saved[1]
    package.setLevel(saved[2])


class TestKafkaConfig:
    """Tests for KafkaConfig."""

    def test_default_values(self) -> None:
        config = KafkaConfig()

        assert config.bootstrap_servers == "localhost:9092"
        assert config.acks == "all"
        assert config.compression == "snappy"

    def test_to_dict(self) -> None:
        """Test conversion to confluent-kafka config dict."""
        result = KafkaConfig(bootstrap_servers="kafka:9092", acks="1").to_dict()

        assert result == {
            "bootstrap.servers": "kafka:9092",
            "acks": "1",
            "batch.size": 16384,
            "linger.ms": 5,
            "compression.type": "snappy",
            "retries": 3,
        }


class TestPostgresConfig:
    """Tests for PostgresConfig."""

    def test_default_values(self) -> None:
        config = PostgresConfig()

        assert config.database == "payments"
        assert config.lock_timeout_ms == 50

    def test_connection_string(self) -> None:
        config = PostgresConfig(
            host="db.example.com", port=5433, database="ledger", user="app", password="pw"
        )

        assert config.connection_string == "postgresql://app:pw@db.example.com:5433/ledger"


class TestPaymentsConfig:
    """Tests for PaymentsConfig."""

    def test_default_values(self) -> None:
        config = PaymentsConfig()

        assert isinstance(config.kafka, KafkaConfig)
        assert isinstance(config.postgres, PostgresConfig)
        assert config.notification == NotificationConfig()
        assert config.notification.topic == TOPIC_TRANSACTION_NOTIFICATIONS
        assert config.storage_backend == "memory"
        assert config.log_level == "INFO"
        assert config.log_format == "standard"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"storage_backend": "sqlite"},
            {"notification": NotificationConfig(notifier="email")},
            {"log_format": "xml"},
        ],
    )
    def test_invalid_values_rejected(self, kwargs: dict) -> None:
        with pytest.raises(ConfigurationError):
            PaymentsConfig(**kwargs)

    def test_from_env_default(self, clean_env: pytest.MonkeyPatch) -> None:
        config = PaymentsConfig.from_env()

        assert config.kafka.bootstrap_servers == "localhost:9092"
        assert config.postgres.host == "localhost"
        assert config.postgres.lock_timeout_ms == 50
        assert config.notification.topic == "transaction_notifications"
        assert config.notification.notifier == "kafka"
        assert config.storage_backend == "memory"

    def test_from_env_custom(self, clean_env: pytest.MonkeyPatch) -> None:
        env = {
            "KAFKA_BOOTSTRAP_SERVERS": "kafka-cluster:9092",
            "KAFKA_ACKS": "1",
            "POSTGRES_HOST": "db.example.com",
            "POSTGRES_PORT": "5433",
            "POSTGRES_DB": "production",
            "POSTGRES_LOCK_TIMEOUT_MS": "200",
            "NOTIFICATION_TOPIC": "payments.done",
            "NOTIFIER": "Console",
            "STORAGE_BACKEND": "POSTGRES",
            "LOG_LEVEL": "DEBUG",
            "LOG_FORMAT": "json",
        }
        for name, value in env.items():
            clean_env.setenv(name, value)

        config = PaymentsConfig.from_env()

        assert config.kafka.bootstrap_servers == "kafka-cluster:9092"
        assert config.kafka.acks == "1"
        assert config.postgres.port == 5433
        assert config.postgres.database == "production"
        assert config.postgres.lock_timeout_ms == 200
        assert config.notification.topic == "payments.done"
        assert config.notification.notifier == "console"
        assert config.storage_backend == "postgres"
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"

    def test_from_env_bad_port(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("POSTGRES_PORT", "not-a-port")

        with pytest.raises(ConfigurationError, match="PostgreSQL"):
            PaymentsConfig.from_env()

    def test_from_env_unknown_backend(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("STORAGE_BACKEND", "redis")

        with pytest.raises(ConfigurationError, match="storage backend"):
            PaymentsConfig.from_env()


class TestBootstrap:
    """Tests for building storage, notifiers and services from config."""

    def test_build_memory_storage(self) -> None:
        assert isinstance(build_storage(PaymentsConfig()), InMemoryStorage)

    def test_build_postgres_storage_creates_schema(self) -> None:
        config = PaymentsConfig(storage_backend="postgres")

        with patch("instant_payments.store.postgres.PostgresStorage") as storage_cls:
            storage = build_storage(config)

        storage_cls.assert_called_once_with(config.postgres)
        storage.create_schema.assert_called_once()

    @pytest.mark.parametrize(
        "kind,expected",
        [("console", ConsoleNotifier), ("none", NullNotifier)],
    )
    def test_build_notifier(self, kind: str, expected: type) -> None:
        config = PaymentsConfig(notification=NotificationConfig(notifier=kind))

        assert isinstance(build_notifier(config), expected)

    def test_build_kafka_notifier(self) -> None:
        config = PaymentsConfig()

        with patch("instant_payments.notify.kafka.Producer") as producer_cls:
            notifier = build_notifier(config)

        producer_cls.assert_called_once_with(config.kafka.to_dict())
        assert notifier.producer is producer_cls.return_value

    def test_build_services_share_storage(self) -> None:
        storage = InMemoryStorage()
        notifier = RecordingNotifier()
        config = PaymentsConfig(notification=NotificationConfig(topic="t", notifier="none"))

        engine, accounts = build_services(config, storage=storage, notifier=notifier)

        assert isinstance(engine, TransferEngine)
        assert isinstance(accounts, AccountService)
        assert engine.storage is storage
        assert accounts.storage is storage
        assert engine.dispatcher.notifier is notifier
        assert engine.dispatcher.topic == "t"


@pytest.mark.usefixtures("restore_logging")
class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_logging_default(self) -> None:
        setup_logging()

        assert logging.getLogger("instant_payments").level == logging.INFO
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_debug(self) -> None:
        setup_logging(level="debug")

        assert logging.getLogger().level == logging.DEBUG

    def test_setup_logging_invalid_level(self) -> None:
        """Unknown level names fall back to INFO."""
        setup_logging(level="INVALID")

        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_json_format(self) -> None:
        setup_logging(format_type="json")

        handlers = logging.getLogger().handlers
        assert any(isinstance(h.formatter, JsonFormatter) for h in handlers)

    def test_setup_logging_replaces_handlers(self) -> None:
        logger = logging.getLogger()
        logger.addHandler(logging.StreamHandler())
        logger.addHandler(logging.StreamHandler())

        setup_logging()

        assert len(logger.handlers) == 1
        assert logger.handlers[0].stream is sys.stdout

    def test_setup_logging_custom_stream(self) -> None:
        stream = io.StringIO()
        handler = setup_logging(stream=stream)

        logging.getLogger("instant_payments.test").info("hello")

        assert handler.stream is stream
        assert "| INFO     | instant_payments.test | hello" in stream.getvalue()

    def test_external_loggers_quieted(self) -> None:
        setup_logging(level="DEBUG")

        assert logging.getLogger("confluent_kafka").level == logging.WARNING
        assert logging.getLogger("psycopg").level == logging.WARNING


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def _record(self, **kwargs) -> logging.LogRecord:
        defaults = {
            "name": "instant_payments.engine",
            "level": logging.INFO,
            "pathname": __file__,
            "lineno": 1,
            "msg": "Transfer %s committed",
            "args": (7,),
            "exc_info": None,
        }
        defaults.update(kwargs)
        return logging.LogRecord(**defaults)

    def test_format_basic(self) -> None:
        data = json.loads(JsonFormatter().format(self._record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "instant_payments.engine"
        assert data["message"] == "Transfer 7 committed"
        assert "timestamp" in data

    def test_format_with_exception(self) -> None:
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(self._record(level=logging.ERROR, exc_info=exc_info)))

        assert data["level"] == "ERROR"
        assert "ValueError" in data["exception"]

    def test_format_transfer_fields(self) -> None:
        record = self._record()
        record.transaction_id = 7
        record.source = 1
        record.destination = 2
        record.amount = Decimal("9.00")

        data = json.loads(JsonFormatter().format(record))

        assert data["transaction_id"] == 7
        assert data["source"] == 1
        assert data["destination"] == 2
        assert data["amount"] == "9.00"

    def test_other_attributes_not_emitted(self) -> None:
        record = self._record()
        record.account_holder = "Ada"

        data = json.loads(JsonFormatter().format(record))

        assert "account_holder" not in data
        assert "transaction_id" not in data


@pytest.mark.usefixtures("restore_logging")
class TestTransferLogging:
    """Engine log lines reach the JSON handler with their transfer fields."""

    def test_committed_transfer_logged_as_json(self) -> None:
        stream = io.StringIO()
        setup_logging(level="INFO", format_type="json", stream=stream)

        storage = InMemoryStorage()
        accounts = AccountService(storage)
        engine = TransferEngine(storage, NotificationDispatcher(RecordingNotifier(), "t"))
        a = accounts.create_account(None, "Ada")
        b = accounts.create_account(None, "Grace")
        accounts.deposit(a.account_id, Decimal("10.00"))

        record = engine.execute_transfer(TransferRequest(a.account_id, b.account_id, Decimal("2.50")))

        lines = [json.loads(line) for line in stream.getvalue().splitlines()]
        committed = [line for line in lines if "transaction_id" in line]
        assert len(committed) == 1
        assert committed[0]["logger"] == "instant_payments.engine"
        assert committed[0]["transaction_id"] == record.transaction_id
        assert committed[0]["source"] == a.account_id
        assert committed[0]["destination"] == b.account_id
        assert committed[0]["amount"] == "2.50"


def test_version_exported() -> None:
    from instant_payments import __version__

    assert isinstance(__version__, str)
