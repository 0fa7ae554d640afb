"""Configuration settings for WordLab."""
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Study settings
GROUP_SIZE = 100  # words per numbered group
IDLE_THRESHOLD_MS = 3 * 60 * 1000  # 3 minutes without input counts as idle
FLUSH_THRESHOLD_SECONDS = 10  # pending study seconds before a durable flush
MASTERED_INTERVAL_DAYS = 12


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///wordlab.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class StudySettings:
    """Review session and time tracking settings."""
    group_size: int = int(os.getenv("GROUP_SIZE", str(GROUP_SIZE)))
    idle_threshold_ms: int = int(os.getenv("IDLE_THRESHOLD_MS", str(IDLE_THRESHOLD_MS)))
    flush_threshold_seconds: int = int(
        os.getenv("FLUSH_THRESHOLD_SECONDS", str(FLUSH_THRESHOLD_SECONDS))
    )
    tick_seconds: float = float(os.getenv("TICK_SECONDS", "1.0"))
    mastered_interval_days: int = MASTERED_INTERVAL_DAYS


@dataclass
class MonitoringSettings:
    """Prometheus metrics settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_study_settings() -> StudySettings:
    """Get study settings."""
    return StudySettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    study: StudySettings = field(default_factory=get_study_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if self.study.group_size < 1:
            raise ValueError("GROUP_SIZE must be positive")

        if self.study.idle_threshold_ms <= 0:
            raise ValueError("IDLE_THRESHOLD_MS must be positive")

        if self.study.flush_threshold_seconds < 1:
            raise ValueError("FLUSH_THRESHOLD_SECONDS must be at least 1")

        if self.study.tick_seconds <= 0:
            raise ValueError("TICK_SECONDS must be positive")

        if not 0 < self.monitoring.port < 65536:
            raise ValueError("METRICS_PORT must be a valid TCP port")


# Create global settings instance
settings = Settings()
settings.validate()
