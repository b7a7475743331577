"""Application bootstrap for resource-watcher.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config -> logging -> AWS session -> account id -> state store
              -> notifications -> reconciler -> scheduler -> REST

Shutdown stops components in reverse order: the scheduler lets an in-flight
cycle finish before the store connection is closed.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING, Any

from resource_watcher.collector.aws_client import AWSResourceClient, build_session
from resource_watcher.collector.enumerator import ResourceEnumerator
from resource_watcher.config import ConfigError, load_config
from resource_watcher.models.config import WatcherConfig
from resource_watcher.notifications import NotificationDispatcher, build_notification_dispatcher
from resource_watcher.observability.logging import get_logger, setup_logging
from resource_watcher.reconciler import Reconciler
from resource_watcher.scheduler import Scheduler
from resource_watcher.storage import StateStore, build_key_value_store

if TYPE_CHECKING:
    import boto3
    import structlog

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class ResourceWatcherApp:
    """Application root. Owns every component and coordinates their lifecycle.

    ``stop()`` is safe to call on an app that never started or already stopped.
    """

    def __init__(self, config: WatcherConfig | None = None) -> None:
        self.config: WatcherConfig | None = config

        self._session: boto3.Session | None = None
        self._client: AWSResourceClient | None = None
        self._account_id: str = ""
        self._store: StateStore | None = None
        self._notifications: NotificationDispatcher | None = None
        self._reconciler: Reconciler | None = None
        self._scheduler: Scheduler | None = None
        self._rest_server: Any = None
        self._rest_task: asyncio.Task[None] | None = None
        self._shutdown_task: asyncio.Task[None] | None = None

        self._running = False
        self._stopped = asyncio.Event()
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def wait_stopped(self) -> None:
        await self._stopped.wait()

    def request_shutdown(self) -> asyncio.Task[None]:
        """Schedule ``stop()`` once; later calls return the same task."""
        if self._shutdown_task is None:
            self._shutdown_task = asyncio.create_task(self.stop(), name="shutdown")
        return self._shutdown_task

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises ConfigError for invalid configuration and _ComponentError if a
        mandatory component cannot start.
        """
        if self.config is None:
            self.config = load_config()

        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("resource-watcher starting", version=_watcher_version())

        await self._start_aws()
        await self._start_store()
        await self._start_notifications()
        await self._start_reconciler()
        await self._start_scheduler()
        await self._start_rest()

        self._running = True
        self._log.info("resource-watcher started", account_id=self._account_id)

    async def _start_aws(self) -> None:
        """Build the boto3 session and resolve the account being watched."""
        assert self._log is not None
        assert self.config is not None
        try:
            loop = asyncio.get_running_loop()
            self._session = await loop.run_in_executor(
                None, build_session, self.config.aws.region, self.config.aws.role_arn
            )
            self._client = AWSResourceClient(self._session)
            self._account_id = await self._client.get_account_id()
            self._log.info("monitoring aws account", account_id=self._account_id)
        except Exception as exc:
            raise _ComponentError("aws", exc) from exc

    async def _start_store(self) -> None:
        assert self._log is not None
        assert self.config is not None
        try:
            kv = await build_key_value_store(self.config.store.redis_uri)
            self._store = StateStore(kv)
            self._log.info("state store started", backend=type(kv).__name__)
        except Exception as exc:
            raise _ComponentError("store", exc) from exc

    async def _start_notifications(self) -> None:
        assert self._log is not None
        assert self.config is not None
        try:
            self._notifications = build_notification_dispatcher(self.config.notifications, self._session)
            self._log.info("notifications started", channels=len(self._notifications.channels))
        except Exception as exc:
            raise _ComponentError("notifications", exc) from exc

    async def _start_reconciler(self) -> None:
        assert self._log is not None
        assert self.config is not None
        assert self._client is not None
        assert self._store is not None
        assert self._notifications is not None
        enum_cfg = self.config.enumeration
        enumerator = ResourceEnumerator(
            self._client,
            max_page_requests=enum_cfg.max_page_requests,
            max_empty_pages=enum_cfg.max_empty_pages,
            page_size=enum_cfg.page_size,
            timeout_seconds=enum_cfg.partition_timeout_seconds,
        )
        self._reconciler = Reconciler(
            account_id=self._account_id,
            client=self._client,
            enumerator=enumerator,
            store=self._store,
            notifier=self._notifications,
            ignore_patterns=self.config.ignore_patterns,
            include_partitions=self.config.regions.include,
            exclude_partitions=self.config.regions.exclude,
            concurrency=enum_cfg.partition_concurrency,
        )
        self._log.info(
            "reconciler started",
            ignore_patterns=len(self.config.ignore_patterns),
            regions_include=self.config.regions.include,
            regions_exclude=self.config.regions.exclude,
        )

    async def _start_scheduler(self) -> None:
        assert self._log is not None
        assert self.config is not None
        assert self._reconciler is not None
        self._scheduler = Scheduler(self._reconciler, self.config.scheduler.interval_seconds)
        await self._scheduler.start()
        self._log.info("scheduler started", interval=self.config.scheduler.interval_seconds)

    async def _start_rest(self) -> None:
        """Start the uvicorn admin server if enabled."""
        assert self._log is not None
        assert self.config is not None
        if not self.config.api.enabled:
            self._log.info("rest api disabled")
            return
        try:
            import uvicorn

            from resource_watcher.api import create_app

            uv_config = uvicorn.Config(
                app=create_app(reconciler=self._reconciler),
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            self._rest_task = asyncio.create_task(server.serve(), name="rest-server")
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            # The admin API is optional; reconciliation continues without it
            self._log.warning("rest api failed to start", error=str(exc))
            self._rest_server = None

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Stop all components in reverse startup order.

        Each step is guarded independently so one failing teardown does not
        prevent the rest from running.
        """
        if self._log is None:
            self._stopped.set()
            return

        log = self._log
        log.info("resource-watcher shutting down")
        self._running = False

        if self._scheduler is not None:
            # No timeout here: an in-flight cycle must reach its persist step.
            await self._scheduler.stop()

        if self._rest_server is not None:
            self._rest_server.should_exit = True
        if self._rest_task is not None:
            try:
                await asyncio.wait_for(self._rest_task, timeout=_SHUTDOWN_GRACE_SECONDS)
            except TimeoutError:
                log.warning("component stop timed out", component="rest", timeout=_SHUTDOWN_GRACE_SECONDS)
                self._rest_task.cancel()
            except Exception as exc:
                log.error("component stop raised an error", component="rest", error=str(exc))

        if self._store is not None:
            try:
                await self._store.close()
            except Exception as exc:
                log.error("component stop raised an error", component="store", error=str(exc))

        log.info("resource-watcher stopped")
        self._stopped.set()


def _watcher_version() -> str:
    from resource_watcher import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main() -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = ResourceWatcherApp()
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, app.request_shutdown)

    try:
        await app.start()
        await app.wait_stopped()
    except ConfigError as exc:
        setup_logging()
        get_logger("app").critical("invalid configuration", error=str(exc))
        raise SystemExit(1) from exc
    except _ComponentError as exc:
        get_logger("app").critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
