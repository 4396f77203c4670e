from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from membership.auth.dependencies import get_current_user
from membership.database import ensure_user_schema, get_db
from membership.models.user import User
from membership.services.users import UserValidationError, create_user, update_user

router = APIRouter(tags=['users'])

DATABASE_UNAVAILABLE = 'Database unavailable. Verify DATABASE_URL.'
CLEARABLE_FIELDS = {'zip', 'first_name', 'last_name'}


def _strip_optional(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    return normalized or None


class CreateUserRequest(BaseModel):
    email: str
    password: str
    password_confirmation: str | None = None
    zip: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    @field_validator('zip', 'first_name', 'last_name')
    @classmethod
    def strip_text(cls, value: str | None) -> str | None:
        return _strip_optional(value)


class UpdateUserRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    password_confirmation: str | None = None
    zip: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    @field_validator('zip', 'first_name', 'last_name')
    @classmethod
    def strip_text(cls, value: str | None) -> str | None:
        return _strip_optional(value)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    first_name: str | None = None
    last_name: str | None = None
    zip: str | None = None
    state: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    created_at: datetime | None = None


class CountResponse(BaseModel):
    count: int


def ensure_database_ready() -> None:
    try:
        ensure_user_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.post('', response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register_user(data: CreateUserRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return create_user(db, **data.model_dump(exclude_none=True))
    except UserValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.errors,
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.get('/count', response_model=CountResponse)
def count_users(
    zip: str | None = Query(default=None),
    state: str | None = Query(default=None),
    location: str | None = Query(default=None),
    latitude: float | None = Query(default=None, ge=-90, le=90),
    longitude: float | None = Query(default=None, ge=-180, le=180),
    radius: float | None = Query(default=None, gt=0),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        if zip is not None:
            return CountResponse(count=User.count_by_zip(db, zip))
        if state is not None:
            return CountResponse(count=User.count_by_state(db, state))
        if latitude is not None and longitude is not None:
            return CountResponse(count=User.count_by_location(db, [latitude, longitude], radius))
        if location is not None:
            return CountResponse(count=User.count_by_location(db, location, radius))
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail='Provide zip, state, location, or latitude and longitude.',
    )


@router.get('/me', response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.patch('/me', response_model=UserResponse)
def update_me(
    data: UpdateUserRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    # Profile fields may be cleared with null; credentials may not.
    changes = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field in CLEARABLE_FIELDS
    }

    try:
        return update_user(db, current_user, **changes)
    except UserValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.errors,
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc
