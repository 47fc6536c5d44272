"""Configuration management for instant-payments."""

from dataclasses import dataclass, field
from typing import Any

from instant_payments.exceptions import ConfigurationError

STORAGE_BACKENDS = ("memory", "postgres")
NOTIFIER_KINDS = ("kafka", "console", "none")
LOG_FORMATS = ("standard", "json")

TOPIC_TRANSACTION_NOTIFICATIONS = "transaction_notifications"


@dataclass
class KafkaConfig:
    """Kafka producer configuration."""

    bootstrap_servers: str = "localhost:9092"
    acks: str = "all"
    batch_size: int = 16384
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "acks": self.acks,
            "batch.size": self.batch_size,
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
        }


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "payments"
    user: str = "postgres"
    password: str = "postgres"
    lock_timeout_ms: int = 50

    @property
    def connection_string(self) -> str:
        """Get connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class NotificationConfig:
    """Where completed-transfer notifications are published."""

    topic: str = TOPIC_TRANSACTION_NOTIFICATIONS
    notifier: str = "kafka"


@dataclass
class PaymentsConfig:
    """Main configuration for instant-payments."""

    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    notification: NotificationConfig = field(default_factory=NotificationConfig)
    storage_backend: str = "memory"
    log_level: str = "INFO"
    log_format: str = "standard"

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Reject unknown backend, notifier and log format names."""
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ConfigurationError(
                f"Unknown storage backend {self.storage_backend!r}; expected one of {STORAGE_BACKENDS}"
            )
        if self.notification.notifier not in NOTIFIER_KINDS:
            raise ConfigurationError(
                f"Unknown notifier {self.notification.notifier!r}; expected one of {NOTIFIER_KINDS}"
            )
        if self.log_format not in LOG_FORMATS:
            raise ConfigurationError(
                f"Unknown log format {self.log_format!r}; expected one of {LOG_FORMATS}"
            )

    @classmethod
    def from_env(cls) -> "PaymentsConfig":
        """Create config from environment variables."""
        import os

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            acks=os.getenv("KAFKA_ACKS", "all"),
        )

        try:
            postgres = PostgresConfig(
                host=os.getenv("POSTGRES_HOST", "localhost"),
                port=int(os.getenv("POSTGRES_PORT", "5432")),
                database=os.getenv("POSTGRES_DB", "payments"),
                user=os.getenv("POSTGRES_USER", "postgres"),
                password=os.getenv("POSTGRES_PASSWORD", "postgres"),
                lock_timeout_ms=int(os.getenv("POSTGRES_LOCK_TIMEOUT_MS", "50")),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid PostgreSQL setting: {e}") from e

        notification = NotificationConfig(
            topic=os.getenv("NOTIFICATION_TOPIC", TOPIC_TRANSACTION_NOTIFICATIONS),
            notifier=os.getenv("NOTIFIER", "kafka").lower(),
        )

        return cls(
            kafka=kafka,
            postgres=postgres,
            notification=notification,
            storage_backend=os.getenv("STORAGE_BACKEND", "memory").lower(),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard").lower(),
        )
