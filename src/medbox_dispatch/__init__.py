"""medbox-dispatch — command dispatch and scheduling for a networked pill dispenser.

Two triggers feed one orchestrator:

* the **plan scheduler** dispenses stored one-shot and weekly plans when they
  fall due, and
* the **ingestion bridge** dispenses ad-hoc commands written by the dashboard.

Every dispense is one command/acknowledgment exchange with the device over
MQTT, serialized so the device never sees two commands at once, and every
attempt leaves exactly one history record.
"""

from .app import DispatchApplication
from .config.settings import DispatchSettings
from .dispensing.orchestrator import DispenseOrchestrator
from .ingestion.bridge import IngestionBridge
from .messaging.protocol import ProtocolClient
from .scheduling.service import PlanSchedulerService, TickReport
from .scheduling.worker import PlanSchedulerWorker

__version__ = "0.1.0"

__all__ = [
    "DispatchApplication",
    "DispatchSettings",
    "DispenseOrchestrator",
    "IngestionBridge",
    "PlanSchedulerService",
    "PlanSchedulerWorker",
    "ProtocolClient",
    "TickReport",
]
