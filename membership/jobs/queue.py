import asyncio
import logging
import uuid
from concurrent.futures import Future
from threading import Lock, Thread

from temporalio.client import Client

from membership.core import config
from membership.jobs.workflows import JobRequest, RunJobWorkflow

logger = logging.getLogger(__name__)


def run_job(job_class, arguments: tuple) -> None:
    try:
        job_class().perform(*arguments)
    except Exception:
        logger.exception('Job %s failed', job_class.__name__)
    else:
        logger.info('Job %s finished', job_class.__name__)


class JobQueue:
    def enqueue(self, job_class, arguments: tuple):
        raise NotImplementedError

    def shutdown(self, wait: bool = True) -> None:
        pass


class InlineQueue(JobQueue):
    """Runs each job immediately in the calling thread."""

    def enqueue(self, job_class, arguments: tuple) -> None:
        run_job(job_class, arguments)


class TemporalQueue(JobQueue):
    """Starts one ``RunJobWorkflow`` per job on the Temporal server.

    Request handlers are synchronous, so the Temporal client lives on its own
    event loop in a background thread and ``enqueue`` returns a
    ``concurrent.futures.Future`` for the workflow handle.
    """

    def __init__(
        self,
        url: str = config.TEMPORAL_URL,
        namespace: str = config.TEMPORAL_NAMESPACE,
        task_queue: str = config.TEMPORAL_TASK_QUEUE,
    ):
        self.url = url
        self.namespace = namespace
        self.task_queue = task_queue
        self._client: Client | None = None
        self._connect_lock: asyncio.Lock | None = None
        self._loop = asyncio.new_event_loop()
        self._thread = Thread(target=self._loop.run_forever, name='membership-temporal', daemon=True)
        self._thread.start()

    async def _get_client(self) -> Client:
        if self._connect_lock is None:
            self._connect_lock = asyncio.Lock()
        async with self._connect_lock:
            if self._client is None:
                self._client = await Client.connect(self.url, namespace=self.namespace)
        return self._client

    async def _start(self, job_name: str, arguments: list):
        client = await self._get_client()
        request = JobRequest(
            job_name=job_name,
            arguments=arguments,
            timeout_seconds=config.JOB_TIMEOUT_SECONDS,
            maximum_attempts=config.JOB_MAX_ATTEMPTS,
        )
        return await client.start_workflow(
            RunJobWorkflow.run,
            request,
            id=f'{job_name}-{uuid.uuid4()}',
            task_queue=self.task_queue,
        )

    def enqueue(self, job_class, arguments: tuple) -> Future:
        job_name = job_class.__name__
        future = asyncio.run_coroutine_threadsafe(self._start(job_name, list(arguments)), self._loop)
        future.add_done_callback(lambda done: self._log_start(job_name, done))
        return future

    @staticmethod
    def _log_start(job_name: str, future: Future) -> None:
        if future.cancelled():
            logger.warning('Starting %s was cancelled', job_name)
            return
        exc = future.exception()
        if exc is not None:
            logger.error('Could not start %s on Temporal', job_name, exc_info=exc)
        else:
            logger.info('Started %s as workflow %s', job_name, future.result().id)

    def shutdown(self, wait: bool = True) -> None:
        if not self._thread.is_alive():
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        if wait:
            self._thread.join()


_queue: JobQueue | None = None
_queue_lock = Lock()


def build_queue() -> JobQueue:
    if config.JOB_QUEUE == 'inline':
        return InlineQueue()
    if config.JOB_QUEUE == 'temporal':
        return TemporalQueue()
    raise RuntimeError(f'Unknown JOB_QUEUE: {config.JOB_QUEUE}')


def get_queue() -> JobQueue:
    global _queue

    if _queue is not None:
        return _queue

    with _queue_lock:
        if _queue is None:
            _queue = build_queue()
    return _queue


def set_queue(queue: JobQueue | None) -> None:
    global _queue
    _queue = queue


def shutdown_queue(wait: bool = True) -> None:
    global _queue

    with _queue_lock:
        queue, _queue = _queue, None
    if queue is not None:
        queue.shutdown(wait=wait)
