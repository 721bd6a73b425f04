import asyncio

from docworker.config.settings import Settings
from docworker.database.connection import close_pool, init_pool
from docworker.events.factory import EventSourceFactory
from docworker.logging.logger import Log
from docworker.pipeline.orchestrator import build_orchestrator
from docworker.worker.worker import Worker


async def serve(settings: Settings) -> None:
    """Build dependencies and run the intake loop until cancelled."""
    orchestrator = build_orchestrator(settings)
    event_source = EventSourceFactory.create(settings)
    worker = Worker(event_source, orchestrator, settings)
    await worker.run()


def main() -> None:
    """Entry point: initialize pool -> build dependencies -> start worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        Log.info("Worker shutting down gracefully")
    finally:
        close_pool()


if __name__ == "__main__":
    main()
