import logging

import httpx

from membership.core import config
from membership.jobs.base import UserJob, UserSnapshot, raise_for_response

logger = logging.getLogger(__name__)


def build_airtable_fields(user: UserSnapshot) -> dict:
    fields = {
        'Email': user.email,
        'First Name': user.first_name,
        'Last Name': user.last_name,
        'Zip': user.zip,
        'State': user.state,
    }
    return {key: value for key, value in fields.items() if value is not None}


class AddUserToAirtablesJob(UserJob):
    """Adds a new member to the Airtable users table."""

    def perform(self, user: UserSnapshot) -> None:
        if not config.AIRTABLE_API_KEY or not config.AIRTABLE_BASE_ID:
            logger.warning('Airtable is not configured; skipping sync for user %s', user.id)
            return

        url = f'{config.AIRTABLE_API_URL}/{config.AIRTABLE_BASE_ID}/{config.AIRTABLE_TABLE}'
        headers = {'Authorization': f'Bearer {config.AIRTABLE_API_KEY}'}

        with httpx.Client(timeout=config.HTTP_TIMEOUT) as client:
            response = client.post(url, json={'fields': build_airtable_fields(user)}, headers=headers)
        raise_for_response('Airtable', response)

        logger.info('Added user %s to Airtable', user.id)
