"""Create and update users.

Saving validates the record, geocodes it when its zip changed, commits, and
for new records enqueues the onboarding jobs.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from membership.jobs.airtable import AddUserToAirtablesJob
from membership.jobs.sendgrid import AddUserToSendGridJob
from membership.jobs.slack import SlackInviterJob
from membership.models.user import User

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {'email', 'zip', 'first_name', 'last_name', 'password', 'password_confirmation'}


class UserValidationError(Exception):
    def __init__(self, errors: list[str]):
        super().__init__(', '.join(errors))
        self.errors = errors


def enqueue_onboarding_jobs(user: User) -> None:
    SlackInviterJob.perform_later(user.email)
    AddUserToAirtablesJob.perform_later(user)
    AddUserToSendGridJob.perform_later(user)


def save_user(db: Session, user: User) -> User:
    errors = user.validate(db)
    if errors:
        raise UserValidationError(errors)

    is_new = user.id is None

    if user.zip_changed():
        user.geocode()
        if user.coordinates is None and user.zip:
            logger.info('Could not geocode zip %r for %s', user.zip, user.email)

    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise UserValidationError(['Email has already been taken']) from exc
    db.refresh(user)
    user.clear_password_input()

    if is_new:
        logger.info('Created user %s', user.id)
        enqueue_onboarding_jobs(user)

    return user


def create_user(db: Session, **attributes) -> User:
    return save_user(db, User(**attributes))


def update_user(db: Session, user: User, **attributes) -> User:
    unknown = set(attributes) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    for field, value in attributes.items():
        setattr(user, field, value)

    try:
        return save_user(db, user)
    except UserValidationError:
        db.rollback()
        raise


def authenticate_user(db: Session, email: str, password: str) -> User | None:
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if user is None or not user.authenticate(password):
        return None
    return user
