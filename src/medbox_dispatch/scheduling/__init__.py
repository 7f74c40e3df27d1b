"""Plan scheduling — the periodic due-plan scan and its worker.

* :class:`PlanSchedulerService` runs one tick: due plans are moved through
  ``PENDING → DISPENSING → {COMPLETED | PENDING | ERROR}`` one at a time.
* :class:`PlanSchedulerWorker` drives ticks from a cron expression and can
  be woken early with :meth:`PlanSchedulerWorker.trigger`.
"""

from .service import PlanSchedulerService, TickReport
from .worker import PlanSchedulerWorker

__all__ = ["PlanSchedulerService", "PlanSchedulerWorker", "TickReport"]
