import os
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('BCRYPT_ROUNDS', '4')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret-key-that-is-long-enough-for-hs256')

from clinic_backend.auth.passwords import hash_password  # noqa: E402
from clinic_backend.database import Base, build_engine, get_db, init_db  # noqa: E402
from clinic_backend.main import app  # noqa: E402
from clinic_backend.models.slot import Slot  # noqa: E402
from clinic_backend.models.user import ROLE_ADMIN, ROLE_PATIENT, User  # noqa: E402


@pytest.fixture
def db_engine(tmp_path):
    engine = build_engine(f'sqlite:///{tmp_path / "clinic.db"}')
    init_db(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(email: str, role: str = ROLE_PATIENT, password: str = 'secret123', name: str | None = None) -> User:
        user = User(
            name=name or email.split('@')[0].title(),
            email=email,
            password_hash=hash_password(password),
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def patient(make_user):
    return make_user('patient@example.com', ROLE_PATIENT, name='Pat Patient')


@pytest.fixture
def admin(make_user):
    return make_user('admin@example.com', ROLE_ADMIN, name='Ada Admin')


@pytest.fixture
def make_slot(db):
    def _make_slot(start_at: datetime, minutes: int = 30) -> Slot:
        slot = Slot(start_at=start_at, end_at=start_at + timedelta(minutes=minutes))
        db.add(slot)
        db.commit()
        db.refresh(slot)
        return slot

    return _make_slot


@pytest.fixture
def future_start() -> datetime:
    tomorrow = datetime.now() + timedelta(days=2)
    return tomorrow.replace(hour=10, minute=0, second=0, microsecond=0)
