import asyncio
import signal
import sys
from typing import Any

from loguru import logger

from listener.app.composition import create_listener_dependencies
from listener.app.config.settings import Settings
from listener.app.core import SERVICE_NAME
from listener.app.core.logging import configure_logging
from listener.app.domain.errors import SubscriptionSetupError
from listener.app.handlers import load_handler
from listener.app.ports.handler import EventHandler


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


async def run_listener(
    handler: EventHandler,
    settings: Settings | None = None,
    *,
    shutdown: asyncio.Event | None = None,
) -> None:
    """Open the subscription and consume until it ends or shutdown is requested.

    SubscriptionSetupError is raised to the caller before any delivery is processed.
    """
    deps = create_listener_dependencies(settings)
    shutdown = shutdown or asyncio.Event()

    await deps.connect()

    def request_shutdown() -> None:
        if not shutdown.is_set():
            _log("shutdown_signal")
            shutdown.set()

    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_shutdown)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            pass

    consumer_task = asyncio.create_task(
        deps.consumption_loop.run(deps.subscription, handler),
    )
    shutdown_task = asyncio.create_task(shutdown.wait())
    _log(
        "listener_started",
        queue=deps.settings.queue_name,
        exchange=deps.settings.exchange_name,
        ack_mode=deps.settings.ack_mode,
    )
    try:
        await asyncio.wait({consumer_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED)
        if not consumer_task.done():
            # The loop requeues an in-flight delivery when cancelled.
            consumer_task.cancel()
        try:
            await consumer_task
        except asyncio.CancelledError:
            pass
    finally:
        shutdown_task.cancel()
        for sig in installed:
            loop.remove_signal_handler(sig)
        await deps.close()
        _log("listener_stopped")


def main() -> int:
    settings = Settings()
    configure_logging(settings.log_level, json=settings.log_json)
    try:
        handler = load_handler(settings.handler_path)
        asyncio.run(run_listener(handler, settings))
    except SubscriptionSetupError as e:
        logger.bind(service_name=SERVICE_NAME, event="setup_failed", step=e.step).error("{}", e)
        return 1
    except KeyboardInterrupt:
        _log("listener_interrupted")
    except Exception as e:
        logger.exception("listener failed: {}", e)
        raise
    return 0


if __name__ == "__main__":
    sys.exit(main())
