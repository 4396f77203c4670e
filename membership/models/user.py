"""User model definitions."""

import re

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from sqlalchemy import Column, DateTime, Float, Index, Integer, String, func, inspect
from sqlalchemy.orm import Session, column_property, validates

from membership.core import config
from membership.database import Base
from membership.services.geocoder import distance_miles, get_geocoder, latitude_bounds

password_hasher = PasswordHasher()


def split_filter(value: str | None) -> list[str]:
    """Split a comma separated filter string into its non-empty entries."""
    if not value:
        return []
    return [item.strip() for item in value.split(',') if item.strip()]


class User(Base):
    """Represents a member account."""
    __tablename__ = "users"
    __table_args__ = (Index('ix_users_coordinates', 'latitude', 'longitude'),)

    VALID_EMAIL = re.compile(r'\A[\w+\-.]+@[a-z\d\-.]+\.[a-z]+\Z', re.IGNORECASE)

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password_digest = Column(String)
    # Loads the previous value on assignment so re-saving the same zip is not a change.
    zip = column_property(Column(String, index=True), active_history=True)
    latitude = Column(Float)
    longitude = Column(Float)
    state = Column(String, index=True)
    first_name = Column(String)
    last_name = Column(String)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Transient, never persisted.
    password_confirmation = None
    _password = None

    @validates('email')
    def normalize_email(self, key, value):
        if value is None:
            return None
        return value.strip().lower()

    @property
    def password(self) -> str | None:
        return self._password

    @password.setter
    def password(self, value: str | None) -> None:
        # None clears the digest; an empty string leaves the current one alone.
        if value is None:
            self._password = None
            self.password_digest = None
        elif value:
            self._password = value
            self.password_digest = password_hasher.hash(value)

    def clear_password_input(self) -> None:
        self._password = None
        self.password_confirmation = None

    def authenticate(self, password: str) -> bool:
        if not self.password_digest or not password:
            return False
        try:
            return password_hasher.verify(self.password_digest, password)
        except (VerificationError, InvalidHashError):
            return False

    @property
    def name(self) -> str:
        return f'{self.first_name} {self.last_name}'

    @property
    def coordinates(self) -> tuple[float, float] | None:
        if self.latitude is None or self.longitude is None:
            return None
        return self.latitude, self.longitude

    def zip_changed(self) -> bool:
        history = inspect(self).attrs.zip.history
        if not history.has_changes():
            return False
        previous = history.deleted[0] if history.deleted else None
        return previous != self.zip

    def geocode(self) -> None:
        if not self.zip or not self.zip.strip():
            self.latitude = self.longitude = self.state = None
            return

        result = get_geocoder().lookup(self.zip)
        if result is None:
            self.latitude = self.longitude = self.state = None
            return

        self.latitude = result.latitude
        self.longitude = result.longitude
        self.state = result.state

    def validate(self, db: Session) -> list[str]:
        errors: list[str] = []

        if not self.email:
            errors.append("Email can't be blank")
        elif not self.VALID_EMAIL.match(self.email):
            errors.append('Email is invalid')
        else:
            duplicate = db.query(User.id).filter(User.email == self.email)
            if self.id is not None:
                duplicate = duplicate.filter(User.id != self.id)
            if duplicate.first() is not None:
                errors.append('Email has already been taken')

        if not self.password_digest:
            errors.append("Password can't be blank")

        if self._password and self.password_confirmation is not None and self.password_confirmation != self._password:
            errors.append("Password confirmation doesn't match Password")

        return errors

    def is_valid(self, db: Session) -> bool:
        return not self.validate(db)

    @classmethod
    def count_by_zip(cls, db: Session, zips: str | None) -> int:
        zip_codes = split_filter(zips)
        if not zip_codes:
            return 0
        return db.query(cls).filter(cls.zip.in_(zip_codes)).count()

    @classmethod
    def count_by_state(cls, db: Session, states: str | None) -> int:
        state_codes = split_filter(states)
        if not state_codes:
            return 0
        return db.query(cls).filter(cls.state.in_(state_codes)).count()

    @classmethod
    def count_by_location(cls, db: Session, location, radius: float | None = None) -> int:
        """Count users within ``radius`` miles of ``location``.

        ``location`` is either a ``(latitude, longitude)`` pair or an address
        or zip code string, which is geocoded first.
        """
        if radius is None:
            radius = config.DEFAULT_SEARCH_RADIUS_MILES

        if isinstance(location, str):
            result = get_geocoder().lookup(location) if location.strip() else None
            if result is None:
                return 0
            origin = result.coordinates
        else:
            try:
                latitude, longitude = location
                origin = (float(latitude), float(longitude))
            except (TypeError, ValueError):
                return 0

        min_latitude, max_latitude = latitude_bounds(origin[0], radius)
        candidates = db.query(cls.latitude, cls.longitude).filter(
            cls.latitude.is_not(None),
            cls.longitude.is_not(None),
            cls.latitude.between(min_latitude, max_latitude),
        ).all()

        return sum(
            1
            for latitude, longitude in candidates
            if distance_miles(origin, (latitude, longitude)) <= radius
        )
