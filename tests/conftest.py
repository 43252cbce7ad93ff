"""
Test configuration and fixtures.
"""
import os
from datetime import date
from typing import Generator

import pytest
from faker import Faker
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set testing environment before the app reads its settings
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['SESSION_SECRET'] = 'test-session-secret-for-testing-only'
os.environ['BCRYPT_ROUNDS'] = '4'

from app.main import app  # noqa: E402
from app.core.database import Base, get_db  # noqa: E402
from app.core.security import create_session_token, hash_password  # noqa: E402
from app.core.session import SessionStore  # noqa: E402
from app.models import Student, StudentStatus, User  # noqa: E402

fake = Faker()

TEST_PASSWORD = 'testpassword123'

# Single shared in-memory database for the app and the fixtures
test_engine = create_engine(
    'sqlite://',
    connect_args={'check_same_thread': False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(
    bind=test_engine,
    class_=Session,
    expire_on_commit=False,
    autoflush=False,
)


@pytest.fixture(scope='function')
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=test_engine)

    session = TestSessionLocal()
    yield session
    session.rollback()
    session.close()

    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create test client with database override"""
    def override_get_db():
        try:
            yield db_session
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    yield TestClient(app)

    app.dependency_overrides.clear()


def _create_user(db: Session, is_admin: bool = False, **overrides) -> User:
    """Persist a dashboard user with the shared test password"""
    user = User(
        name=overrides.pop('name', fake.name()),
        username=overrides.pop('username', fake.unique.user_name()),
        password_hash=hash_password(overrides.pop('password', TEST_PASSWORD)),
        is_active=overrides.pop('is_active', True),
        is_admin=is_admin,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _create_student(db: Session, **overrides) -> Student:
    """Persist a student; any column can be overridden"""
    values = {
        'name': fake.name(),
        'email': fake.unique.email(),
        'phone': fake.numerify('555-###-####'),
        'course_interested': 'Nursing',
        'location': 'Chicago',
        'status': StudentStatus.PENDING,
        'registration_date': date(2024, 1, 15),
    }
    values.update(overrides)
    student = Student(**values)
    db.add(student)
    db.commit()
    db.refresh(student)
    return student


def _headers_for(db: Session, user: User) -> dict:
    """Open a session for the user and return Bearer headers for it"""
    session = SessionStore(db).create(user)
    db.commit()
    token = create_session_token(user.id, session.sid)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def test_user(db_session: Session) -> User:
    """Create a test user"""
    return _create_user(db_session)


@pytest.fixture
def other_user(db_session: Session) -> User:
    """Create a second, unrelated user"""
    return _create_user(db_session)


@pytest.fixture
def admin_user(db_session: Session) -> User:
    """Create an admin test user"""
    return _create_user(db_session, is_admin=True)


@pytest.fixture
def auth_headers(db_session: Session, test_user: User) -> dict:
    """Authentication headers for the test user"""
    return _headers_for(db_session, test_user)


@pytest.fixture
def other_auth_headers(db_session: Session, other_user: User) -> dict:
    """Authentication headers for the second user"""
    return _headers_for(db_session, other_user)


@pytest.fixture
def admin_auth_headers(db_session: Session, admin_user: User) -> dict:
    """Authentication headers for the admin user"""
    return _headers_for(db_session, admin_user)


@pytest.fixture
def make_student(db_session: Session):
    """Factory fixture persisting students with overridable columns"""
    def factory(**overrides) -> Student:
        return _create_student(db_session, **overrides)
    return factory


@pytest.fixture
def password() -> str:
    """Password shared by every fixture user"""
    return TEST_PASSWORD
