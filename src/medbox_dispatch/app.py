"""DispatchApplication — wires the store, the broker and both dispense triggers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .config.settings import DispatchSettings
from .dispensing.orchestrator import DispenseOrchestrator
from .ingestion.bridge import IngestionBridge
from .messaging.exceptions import MessagingError
from .messaging.mqtt.connection import MqttConnectionManager
from .messaging.protocol import ProtocolClient
from .persistence.mongo import (
    MongoCommandFeed,
    MongoCommandRepository,
    MongoConnectionManager,
    MongoExecutionLedger,
    MongoHistoryRepository,
    MongoMagazineRepository,
    MongoPlanRepository,
)
from .scheduling.service import PlanSchedulerService
from .scheduling.worker import PlanSchedulerWorker
from .seeding import seed_magazines

if TYPE_CHECKING:
    from .ports.broker import IBrokerConnection
    from .ports.command_feed import ICommandFeed

logger = logging.getLogger("medbox.app")


class DispatchApplication:
    """
    The running service: one broker session, one store connection, one
    protocol client shared by the scheduler worker and the ingestion bridge.

    ``broker``, ``mongo`` and ``feed`` may be injected, which is how tests
    run the whole wiring against the in-memory broker and mongomock.
    """

    def __init__(
        self,
        settings: DispatchSettings | None = None,
        *,
        broker: IBrokerConnection | None = None,
        mongo: MongoConnectionManager | None = None,
        feed: ICommandFeed | None = None,
    ) -> None:
        self.settings = s = settings or DispatchSettings()
        self.channels = s.channels

        self.mongo = mongo or MongoConnectionManager(s.mongo_url, s.mongo_database)
        self.broker: IBrokerConnection = broker or MqttConnectionManager(
            s.mqtt_host,
            s.mqtt_port,
            username=s.mqtt_username,
            password=(
                s.mqtt_password.get_secret_value() if s.mqtt_password else None
            ),
            client_id=s.mqtt_client_id,
            reconnect_interval=s.reconnect_interval_s,
        )

        self.plans = MongoPlanRepository(self.mongo, s.plans_collection)
        self.history = MongoHistoryRepository(self.mongo, s.history_collection)
        self.commands = MongoCommandRepository(self.mongo, s.commands_collection)
        self.magazines = MongoMagazineRepository(self.mongo, s.magazines_collection)
        self.feed = feed or MongoCommandFeed(self.commands)
        self.ledger = (
            MongoExecutionLedger(self.mongo, s.executed_commands_collection)
            if s.idempotent_ingestion
            else None
        )

        self.client = ProtocolClient(self.broker, default_timeout=s.ack_timeout)
        self.orchestrator = DispenseOrchestrator(
            self.client, self.history, self.channels, ack_timeout=s.ack_timeout
        )
        self.scheduler = PlanSchedulerService(self.plans, self.orchestrator, tz=s.tz)
        self.scheduler_worker = PlanSchedulerWorker(
            self.scheduler, s.tick_interval_cron, tz=s.tz
        )
        self.bridge = IngestionBridge(
            self.feed, self.commands, self.orchestrator, ledger=self.ledger
        )

    async def start(self) -> None:
        """Connect, seed, then start the scheduler worker and the bridge."""
        await self.mongo.connect()
        await self.broker.connect()
        try:
            await self.broker.subscribe_persistent(
                self.channels.events_filter, self._on_device_event
            )
        except MessagingError as e:
            logger.warning(
                "Could not subscribe to %s: %s", self.channels.events_filter, e
            )
        if self.settings.seed_magazines:
            await seed_magazines(self.magazines)
        await self.scheduler_worker.start()
        await self.bridge.start()
        logger.info(
            "Dispatch service started (device=%s, ack timeout=%.1fs)",
            self.channels.device_topic,
            self.settings.ack_timeout,
        )

    async def stop(self) -> None:
        """Stop both triggers, then close the broker and the store."""
        await self.bridge.stop()
        await self.scheduler_worker.stop()
        await self.broker.close()
        self.mongo.close()
        logger.info("Dispatch service stopped")

    async def health_check(self) -> dict[str, bool]:
        return {
            "broker": await self.broker.health_check(),
            "store": await self.mongo.health_check(),
        }

    def _on_device_event(self, topic: str, payload: bytes) -> None:
        logger.info(
            "Device event on %s: %s", topic, payload.decode("utf-8", errors="replace")
        )
