from datetime import datetime

import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import IntegrityError

from clinic_backend import database


@pytest.fixture
def legacy_engine(tmp_path, monkeypatch):
    monkeypatch.setattr(database, '_constraints_checked', False)
    engine = create_engine(f'sqlite:///{tmp_path / "legacy.db"}')
    with engine.begin() as connection:
        connection.execute(text('CREATE TABLE slots (id INTEGER PRIMARY KEY, start_at DATETIME, end_at DATETIME)'))
        connection.execute(
            text('CREATE TABLE bookings (id INTEGER PRIMARY KEY, user_id INTEGER, slot_id INTEGER, created_at DATETIME)')
        )
    try:
        yield engine
    finally:
        engine.dispose()


def test_ensure_booking_constraints_adds_unique_indexes(legacy_engine) -> None:
    database.ensure_booking_constraints(bind=legacy_engine)

    slot_indexes = {index['name']: index for index in inspect(legacy_engine).get_indexes('slots')}
    booking_indexes = {index['name']: index for index in inspect(legacy_engine).get_indexes('bookings')}
    assert slot_indexes['uq_slots_window']['unique']
    assert booking_indexes['uq_bookings_slot']['unique']


def test_ensure_booking_constraints_blocks_double_booking(legacy_engine) -> None:
    database.ensure_booking_constraints(bind=legacy_engine)

    with legacy_engine.begin() as connection:
        connection.execute(text('INSERT INTO bookings (user_id, slot_id, created_at) VALUES (1, 7, :now)'), {'now': datetime.now().isoformat()})

    with pytest.raises(IntegrityError):
        with legacy_engine.begin() as connection:
            connection.execute(
                text('INSERT INTO bookings (user_id, slot_id, created_at) VALUES (2, 7, :now)'),
                {'now': datetime.now().isoformat()},
            )


def test_ensure_booking_constraints_runs_once(legacy_engine, monkeypatch) -> None:
    database.ensure_booking_constraints(bind=legacy_engine)
    monkeypatch.setattr(database, 'inspect', lambda target: pytest.fail('schema inspected twice'))

    database.ensure_booking_constraints(bind=legacy_engine)
