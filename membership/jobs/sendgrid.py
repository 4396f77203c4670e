import logging

import httpx

from membership.core import config
from membership.jobs.base import UserJob, UserSnapshot, raise_for_response

logger = logging.getLogger(__name__)


def build_sendgrid_payload(user: UserSnapshot) -> dict:
    contact = {'email': user.email}
    if user.first_name:
        contact['first_name'] = user.first_name
    if user.last_name:
        contact['last_name'] = user.last_name
    if user.zip:
        contact['postal_code'] = user.zip
    if user.state:
        contact['state_province_region'] = user.state

    payload = {'contacts': [contact]}
    if config.SENDGRID_LIST_ID:
        payload['list_ids'] = [config.SENDGRID_LIST_ID]
    return payload


class AddUserToSendGridJob(UserJob):
    """Upserts a new member into SendGrid marketing contacts."""

    def perform(self, user: UserSnapshot) -> None:
        if not config.SENDGRID_API_KEY:
            logger.warning('SendGrid is not configured; skipping sync for user %s', user.id)
            return

        headers = {'Authorization': f'Bearer {config.SENDGRID_API_KEY}'}

        with httpx.Client(timeout=config.HTTP_TIMEOUT) as client:
            response = client.put(
                f'{config.SENDGRID_API_URL}/marketing/contacts',
                json=build_sendgrid_payload(user),
                headers=headers,
            )
        raise_for_response('SendGrid', response)

        logger.info('Added user %s to SendGrid', user.id)
