"""DispatchSettings — environment-driven configuration for the service.

Priority chain (highest to lowest):
  1. Init kwargs
  2. Env vars — ``MEDBOX_*`` prefix
  3. ``.env`` file in the working directory
  4. Code defaults
"""

from __future__ import annotations

from datetime import tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..messaging.envelope import DeviceChannels


class DispatchSettings(BaseSettings):
    """All runtime settings of the dispatch service.

    Attributes:
        ack_timeout_ms: How long one dispense waits for the device's
            acknowledgment before it is recorded as failed.
        tick_interval_cron: Cron expression driving scheduler ticks.
        timezone: IANA zone in which recurring ``timeOfDay`` values are
            interpreted.
        idempotent_ingestion: Keep a durable ledger of dispensed ad-hoc
            commands so a replayed record is not dispensed twice.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        env_prefix="MEDBOX_",
        env_file=".env",
        extra="ignore",
    )

    # --- broker ---
    mqtt_host: str = "localhost"
    mqtt_port: int = Field(default=1883, gt=0, le=65535)
    mqtt_username: str | None = None
    mqtt_password: SecretStr | None = None
    mqtt_client_id: str = ""
    reconnect_interval_s: float = Field(default=1.0, gt=0)

    # --- device ---
    topic_root: str = "medbox"
    device_id: str = "01"
    ack_timeout_ms: int = Field(default=15000, gt=0)

    # --- scheduling ---
    tick_interval_cron: str = "* * * * *"
    timezone: str = "UTC"

    # --- store ---
    mongo_url: str = "mongodb://localhost:27017"
    mongo_database: str = "medbox"
    plans_collection: str = "plans"
    history_collection: str = "history"
    commands_collection: str = "dispense_commands"
    magazines_collection: str = "magazines"
    executed_commands_collection: str = "executed_commands"

    # --- behaviour ---
    idempotent_ingestion: bool = False
    seed_magazines: bool = True

    # --- logging ---
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("tick_interval_cron")
    @classmethod
    def _valid_cron(cls, value: str) -> str:
        if not croniter.is_valid(value):
            raise ValueError(f"invalid cron expression {value!r}")
        return value

    @field_validator("timezone")
    @classmethod
    def _valid_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown time zone {value!r}") from e
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @property
    def ack_timeout(self) -> float:
        """Ack timeout in seconds."""
        return self.ack_timeout_ms / 1000

    @property
    def tz(self) -> tzinfo:
        return ZoneInfo(self.timezone)

    @property
    def channels(self) -> DeviceChannels:
        return DeviceChannels(topic_root=self.topic_root, device_id=self.device_id)
