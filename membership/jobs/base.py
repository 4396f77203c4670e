"""Background job plumbing.

A job class implements ``perform``. Callers use ``perform_later`` to hand the
job to the configured queue, or ``perform_now`` to run it in place.
"""

import logging
from dataclasses import dataclass

import httpx

from membership.jobs.queue import get_queue

logger = logging.getLogger(__name__)


class JobError(Exception):
    """Raised when a job's external service rejects the request."""

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


@dataclass(frozen=True)
class UserSnapshot:
    """The user fields a job needs, copied before the session goes away."""
    id: int | None
    email: str
    first_name: str | None = None
    last_name: str | None = None
    zip: str | None = None
    state: str | None = None

    @classmethod
    def from_user(cls, user) -> 'UserSnapshot':
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            zip=user.zip,
            state=user.state,
        )


class Job:
    @classmethod
    def serialize(cls, *args) -> tuple:
        return args

    @classmethod
    def perform_later(cls, *args):
        arguments = cls.serialize(*args)
        logger.info('Enqueuing %s', cls.__name__)
        return get_queue().enqueue(cls, arguments)

    @classmethod
    def perform_now(cls, *args):
        return cls().perform(*cls.serialize(*args))

    def perform(self, *args):
        raise NotImplementedError


class UserJob(Job):
    @classmethod
    def serialize(cls, user) -> tuple:
        if isinstance(user, UserSnapshot):
            return (user,)
        return (UserSnapshot.from_user(user),)


def raise_for_response(service: str, response: httpx.Response) -> None:
    if 200 <= response.status_code < 300:
        return
    # 5xx and 429 are transient; other 4xx mean the request itself is wrong.
    retryable = response.status_code >= 500 or response.status_code == 429
    raise JobError(
        f'{service} request failed {response.status_code}: {response.text[:200]}',
        retryable=retryable,
    )
