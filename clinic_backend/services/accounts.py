import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.auth.passwords import hash_password, verify_password
from clinic_backend.errors import UnauthorizedError, ValidationFailedError
from clinic_backend.models.user import ROLE_PATIENT, User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def find_user_by_email(db: Session, email: str) -> User | None:
    statement = select(User).where(func.lower(User.email) == normalize_email(email))
    return db.execute(statement).scalars().first()


def register_user(db: Session, name: str, email: str, password: str, role: str = ROLE_PATIENT) -> User:
    if find_user_by_email(db, email) is not None:
        raise ValidationFailedError('Email is already registered.')

    user = User(
        name=name.strip(),
        email=normalize_email(email),
        password_hash=hash_password(password),
        role=role,
    )
    try:
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError as exc:
        db.rollback()
        raise ValidationFailedError('Email is already registered.') from exc
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info('Registered %s user %s', role, user.id)
    return user


def authenticate_user(db: Session, email: str, password: str) -> User:
    user = find_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        raise UnauthorizedError('Invalid email or password.')
    return user
