"""Instance Poller - Periodically re-executes instances waiting on dynamic actions

DYNAMIC actions finish on their own (a target reaching some state, a
condition becoming true). Nobody pushes an execute call for them, so the
poller sweeps running instances and re-triggers them as the system actor.
"""
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config.settings import settings
from ..domain.errors import DomainError
from ..domain.models import ActorContext
from ..services.instance_service import InstanceService
from ..utils.logger import get_logger, set_correlation_id
from ..utils.idgen import generate_correlation_id

logger = get_logger(__name__)


class InstancePoller:
    """
    Scheduler wrapper around the dynamic-instance sweep

    Each sweep is independent: an instance that fails (concurrent writer,
    broken definition) is logged and skipped, the rest still run.
    """

    def __init__(self, instance_service: Optional[InstanceService] = None):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.instance_service = instance_service or InstanceService()
        self.system_actor = ActorContext(
            user_id=settings.system_actor_id,
            display_name="Workflow Scheduler",
            roles=[settings.admin_role]
        )
        self._is_running = False

    def start(self) -> None:
        """Start the scheduler"""
        if self._is_running:
            logger.warning("Poller already running")
            return

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self._sweep_job,
            trigger=IntervalTrigger(seconds=settings.scheduler_interval_seconds),
            id="sweep_dynamic_instances",
            name="Re-execute instances on dynamic actions",
            replace_existing=True
        )
        self.scheduler.start()
        self._is_running = True
        logger.info(
            f"Instance poller started (every {settings.scheduler_interval_seconds}s)"
        )

    def stop(self) -> None:
        """Stop the scheduler"""
        if self.scheduler:
            self.scheduler.shutdown()
            self._is_running = False
            logger.info("Instance poller stopped")

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def _sweep_job(self) -> None:
        try:
            self.sweep()
        except Exception as e:
            logger.error(f"Error in dynamic instance sweep: {e}", exc_info=True)

    def sweep(self) -> int:
        """Re-execute every running instance on a DYNAMIC action; returns how many advanced"""
        set_correlation_id(generate_correlation_id())

        instances = self.instance_service.list_dynamic_instances()
        if not instances:
            return 0

        logger.info(f"Re-executing {len(instances)} dynamic instances")

        advanced = 0
        for instance in instances:
            try:
                result = self.instance_service.engine.execute(instance, self.system_actor)
            except DomainError as e:
                logger.warning(
                    f"Re-execute of {instance.instance_id} failed: {e.message}",
                    extra={"instance_id": instance.instance_id, "error_code": e.error_code}
                )
                continue

            if result.version != instance.version:
                advanced += 1

        return advanced


# Global poller instance
_poller: Optional[InstancePoller] = None


def get_poller() -> InstancePoller:
    """Get or create poller instance"""
    global _poller
    if _poller is None:
        _poller = InstancePoller()
    return _poller


def start_scheduler() -> None:
    """Start the global poller"""
    get_poller().start()


def stop_scheduler() -> None:
    """Stop the global poller"""
    global _poller
    if _poller:
        _poller.stop()
        _poller = None
