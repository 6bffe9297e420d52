"""Create the admin account and the initial slot grid.

Usage:
    python -m clinic_backend.seed

Re-running is safe: an existing admin is left as is and slots that already
exist are skipped.
"""
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.core import config
from clinic_backend.database import SessionLocal, ensure_booking_constraints, init_db
from clinic_backend.models.user import ROLE_ADMIN, User
from clinic_backend.services import accounts
from clinic_backend.services.slot_store import ensure_slots

logger = logging.getLogger(__name__)


def seed_admin(db: Session) -> tuple[User, bool]:
    existing = accounts.find_user_by_email(db, config.ADMIN_EMAIL)
    if existing is not None:
        return existing, False

    admin = accounts.register_user(
        db,
        name=config.ADMIN_NAME,
        email=config.ADMIN_EMAIL,
        password=config.ADMIN_PASSWORD,
        role=ROLE_ADMIN,
    )
    return admin, True


def seed(db: Session) -> dict:
    admin, admin_created = seed_admin(db)
    slots_created = ensure_slots(db)
    return {'admin_email': admin.email, 'admin_created': admin_created, 'slots_created': slots_created}


def main() -> None:
    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(name)s: %(message)s')
    logger.info('Starting database seeding...')

    try:
        init_db()
        ensure_booking_constraints()
        db = SessionLocal()
        try:
            result = seed(db)
        finally:
            db.close()
    except SQLAlchemyError:
        logger.exception('Seeding failed. Check DATABASE_URL and database credentials.')
        sys.exit(1)

    if result['admin_created']:
        logger.info('Admin user created: %s', result['admin_email'])
    else:
        logger.info('Admin user already exists: %s', result['admin_email'])
    logger.info('Created %s slots', result['slots_created'])
    logger.info('Database seeding completed!')


if __name__ == "__main__":
    main()
