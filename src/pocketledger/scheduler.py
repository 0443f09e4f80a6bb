"""Background scheduler for the daily auto-sync of provider accounts."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from .config import BaseConfig
from .domain.repositories.account import AccountRepository
from .models.account import Account, AccountCategory, AccountSource
from .models.operation import OperationItem, OperationKind
from .models.sync import SyncEvent, SyncKind, SyncStatus
from .services.bulk_operations import BulkOperationCoordinator, BulkOperationResult, Executor
from .services.sync_tracker import SyncRegistry

logger = logging.getLogger(__name__)

AUTO_SYNC_JOB_ID = "auto_sync"


def sync_kind_for(account: Account) -> SyncKind:
    if account.category == AccountCategory.CRYPTO.value:
        return SyncKind.CRYPTO
    return SyncKind.BANKING


class AutoSyncScheduler:
    """Queues a sync of every active provider account once a day.

    The run is skipped while any resource is still syncing so a slow sync is
    never stacked on top of itself.
    """

    def __init__(
        self,
        *,
        config: BaseConfig,
        accounts: AccountRepository,
        registry: SyncRegistry,
        trigger_sync: Executor,
        on_finished: Optional[Callable[[BulkOperationResult], None]] = None,
    ):
        """Create the scheduler.

        Args:
            config: Supplies ``AUTO_SYNC_HOUR`` and ``BULK_TIMEOUT``
            accounts: Repository used to find accounts to sync
            registry: Live sync state, consulted before each run
            trigger_sync: Bulk executor that asks the provider to start syncs
            on_finished: Optional callback receiving each run's result
        """
        self.config = config
        self.accounts = accounts
        self.registry = registry
        self.trigger_sync = trigger_sync
        self.on_finished = on_finished
        self.scheduler: Optional[BackgroundScheduler] = None

    def start(self) -> None:
        """Start the background scheduler."""
        if self.scheduler is not None:
            logger.warning("Scheduler already running")
            return

        self.scheduler = BackgroundScheduler()
        self.scheduler.add_job(
            func=self.run_once,
            trigger=CronTrigger(hour=self.config.AUTO_SYNC_HOUR, minute=0),
            id=AUTO_SYNC_JOB_ID,
            name="Daily Account Sync",
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info("Scheduled daily auto-sync at %02d:00", self.config.AUTO_SYNC_HOUR)

    def stop(self) -> None:
        """Stop the background scheduler gracefully."""
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=True)
            self.scheduler = None
            logger.info("Background scheduler stopped")

    def syncable_accounts(self) -> list[Account]:
        return [
            account
            for account in self.accounts.list_active()
            if account.source == AccountSource.PROVIDER.value
        ]

    def run_once(self) -> Optional[BulkOperationResult]:
        """Job body; also callable directly. Returns None when the run is skipped."""

        if self.registry.has_active_syncs():
            logger.info(
                "Skipping auto-sync; syncs already active",
                extra={"active": self.registry.active_resources()},
            )
            return None

        accounts = self.syncable_accounts()
        if not accounts:
            logger.info("Auto-sync found no provider accounts")
            return None

        try:
            result = asyncio.run(self._sync(accounts))
        except Exception as exc:
            logger.error(f"Auto-sync failed: {exc}", exc_info=True)
            return None

        if self.on_finished is not None:
            self.on_finished(result)
        return result

    async def _sync(self, accounts: list[Account]) -> BulkOperationResult:
        coordinator = BulkOperationCoordinator(
            OperationKind.SYNC, timeout=self.config.BULK_TIMEOUT
        )
        result = await coordinator.run(
            [OperationItem(id=a.id, name=a.name) for a in accounts],
            self.trigger_sync,
        )
        kinds = {a.id: sync_kind_for(a) for a in accounts}
        for account_id in result.succeeded_ids:
            self.registry.apply(
                SyncEvent(
                    resource_id=account_id,
                    kind=kinds[account_id],
                    status=SyncStatus.QUEUED,
                    message="Queued by daily auto-sync",
                )
            )
        return result


def create_scheduler(*, auto_start: bool = False, **kwargs) -> AutoSyncScheduler:
    """Create and optionally start the auto-sync scheduler."""
    scheduler = AutoSyncScheduler(**kwargs)
    if auto_start:
        scheduler.start()
    return scheduler
