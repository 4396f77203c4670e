import logging

import httpx

from membership.core import config
from membership.jobs.base import Job, JobError, raise_for_response

logger = logging.getLogger(__name__)

# Slack reports these as failures, but the member already has access.
ALREADY_INVITED_ERRORS = {'already_invited', 'already_in_team', 'already_in_team_invited_user'}


class SlackInviterJob(Job):
    """Invites a new member's email address to the Slack team."""

    def perform(self, email: str) -> None:
        if not config.SLACK_TEAM or not config.SLACK_TOKEN:
            logger.warning('Slack is not configured; skipping invite for %s', email)
            return

        url = f'https://{config.SLACK_TEAM}.slack.com/api/users.admin.invite'
        data = {'email': email, 'token': config.SLACK_TOKEN, 'set_active': 'true'}

        with httpx.Client(timeout=config.HTTP_TIMEOUT) as client:
            response = client.post(url, data=data)
        raise_for_response('Slack', response)

        payload = response.json()
        if payload.get('ok'):
            logger.info('Sent Slack invite to %s', email)
            return

        error = payload.get('error', 'unknown_error')
        if error in ALREADY_INVITED_ERRORS:
            logger.info('Slack invite for %s skipped: %s', email, error)
            return
        raise JobError(f'Slack invite failed: {error}', retryable=error == 'ratelimited')
