from collections.abc import Generator
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from clinic_backend.core import config


def build_engine(database_url: str):
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, echo=config.SQL_ECHO, connect_args=connect_args)


engine = build_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_constraints_checked = False


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None) -> None:
    # Registers every model on Base.metadata before create_all.
    from clinic_backend.models import booking, slot, user  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def ensure_booking_constraints(bind=None) -> None:
    """Add the uniqueness guards to tables created before they existed."""
    global _constraints_checked

    if _constraints_checked:
        return

    with _schema_lock:
        if _constraints_checked:
            return

        target = bind or engine
        inspector = inspect(target)
        table_names = set(inspector.get_table_names())

        with target.begin() as connection:
            if 'slots' in table_names:
                connection.execute(
                    text('CREATE UNIQUE INDEX IF NOT EXISTS uq_slots_window ON slots(start_at, end_at)')
                )
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_slots_start ON slots(start_at)')
                )
            if 'bookings' in table_names:
                connection.execute(
                    text('CREATE UNIQUE INDEX IF NOT EXISTS uq_bookings_slot ON bookings(slot_id)')
                )
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_bookings_user ON bookings(user_id)')
                )

        _constraints_checked = True
