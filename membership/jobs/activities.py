"""Temporal activities, one per job class, named after the class."""

from temporalio import activity
from temporalio.exceptions import ApplicationError

from membership.jobs.airtable import AddUserToAirtablesJob
from membership.jobs.base import JobError, UserSnapshot
from membership.jobs.sendgrid import AddUserToSendGridJob
from membership.jobs.slack import SlackInviterJob


def _perform(job_class, *arguments) -> None:
    try:
        job_class().perform(*arguments)
    except JobError as exc:
        raise ApplicationError(
            str(exc),
            type='TransientJobError' if exc.retryable else 'JobError',
            non_retryable=not exc.retryable,
        ) from exc


@activity.defn(name=SlackInviterJob.__name__)
def invite_to_slack(email: str) -> None:
    _perform(SlackInviterJob, email)


@activity.defn(name=AddUserToAirtablesJob.__name__)
def add_user_to_airtable(user: UserSnapshot) -> None:
    _perform(AddUserToAirtablesJob, user)


@activity.defn(name=AddUserToSendGridJob.__name__)
def add_user_to_sendgrid(user: UserSnapshot) -> None:
    _perform(AddUserToSendGridJob, user)


JOB_ACTIVITIES = [invite_to_slack, add_user_to_airtable, add_user_to_sendgrid]
