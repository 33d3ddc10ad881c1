"""Worker process: event consumer loop and billing timer.

Run with ``python -m meterly.worker``. With the Redis Streams bus the worker
consumes every subscription; with the in-memory bus events are delivered
inline by the publishing process.

The billing timer only runs against a shared key-value store. With
``KV_BACKEND=memory`` the worker's store is private to this process, holds no
tenants or usage, and any invoices it wrote would be invisible to the API, so
the timer is not started. Bill through ``POST /v1/billing/runs`` on the API
process instead, or switch both processes to ``KV_BACKEND=redis``.
"""

import asyncio
import signal
from typing import TYPE_CHECKING, Awaitable

from meterly.core.config import KeyValueBackendType, Settings, settings
from meterly.core.logging import logger
from meterly.domains.billing.scheduler import BillingScheduler

if TYPE_CHECKING:
    from meterly.core.container import Container


async def run_billing_timer(
    scheduler: BillingScheduler, interval_seconds: float, stop: asyncio.Event
) -> None:
    """Run the billing scheduler every ``interval_seconds`` until ``stop`` is set.

    Each tick bills the previous month; ticks after the first are no-ops
    until the month rolls over (completed runs short-circuit).
    """
    logger.info(f"Billing timer started (interval={interval_seconds}s)")
    while not stop.is_set():
        try:
            result = await scheduler.run()
            if not result.already_completed:
                logger.info(
                    f"Billing tick for {result.period}: {result.invoices_created} invoices created"
                )
        except Exception:
            logger.error("Billing run failed, retrying on the next tick", exc_info=True)

        try:
            await asyncio.wait_for(stop.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            continue
    logger.info("Billing timer stopped")


def install_signal_handlers(stop: asyncio.Event) -> None:
    """Set ``stop`` on SIGINT or SIGTERM, from inside the running loop."""
    loop = asyncio.get_running_loop()

    def _on_signal(sig: signal.Signals) -> None:
        logger.info(f"Received {sig.name}, shutting down...")
        stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _on_signal, sig)


def worker_tasks(
    container: "Container", config: Settings, stop: asyncio.Event
) -> list[Awaitable[None]]:
    """Coroutines the worker runs until ``stop`` is set."""
    tasks: list[Awaitable[None]] = []

    if config.KV_BACKEND == KeyValueBackendType.MEMORY:
        logger.warning(
            "KV_BACKEND=memory: billing timer disabled, this process has no shared store"
        )
    else:
        tasks.append(
            run_billing_timer(
                container.billing_scheduler, config.BILLING_RUN_INTERVAL_SECONDS, stop
            )
        )

    consume = getattr(container.event_bus, "run", None)
    if consume is not None:
        tasks.append(consume(stop))
    return tasks


async def main() -> None:
    """Main entry point for the worker process."""
    from meterly.core import container as container_mod
    from meterly.core.container import initialize_container

    logger.info("Initializing dependency injection container...")
    initialize_container(settings)
    logger.info("Container initialized successfully")
    container = container_mod.container

    stop = asyncio.Event()
    install_signal_handlers(stop)

    tasks = worker_tasks(container, settings, stop)
    if not tasks:
        logger.warning("Nothing to run with the in-memory backends, exiting")

    try:
        await asyncio.gather(*tasks)
    finally:
        await container.close()


if __name__ == "__main__":
    asyncio.run(main())
