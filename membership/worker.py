"""Run the Temporal worker that executes background jobs.

Usage:
    python -m membership.worker
"""
import asyncio
import logging
import signal
from concurrent.futures import ThreadPoolExecutor

from temporalio.client import Client
from temporalio.worker import Worker

from membership.core import config
from membership.jobs.activities import JOB_ACTIVITIES
from membership.jobs.workflows import RunJobWorkflow

logger = logging.getLogger(__name__)


def build_worker(client: Client, activity_executor: ThreadPoolExecutor) -> Worker:
    # The jobs use blocking httpx clients, so activities run on a thread pool.
    return Worker(
        client,
        task_queue=config.TEMPORAL_TASK_QUEUE,
        workflows=[RunJobWorkflow],
        activities=JOB_ACTIVITIES,
        activity_executor=activity_executor,
        max_concurrent_activities=config.JOB_WORKERS,
    )


async def run_worker() -> None:
    client = await Client.connect(config.TEMPORAL_URL, namespace=config.TEMPORAL_NAMESPACE)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass

    with ThreadPoolExecutor(max_workers=config.JOB_WORKERS) as activity_executor:
        worker = build_worker(client, activity_executor)
        async with worker:
            logger.info('Worker polling task queue %s', config.TEMPORAL_TASK_QUEUE)
            await stop_event.wait()
            logger.info('Shutdown signal received; draining worker')


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_worker())


if __name__ == '__main__':
    main()
