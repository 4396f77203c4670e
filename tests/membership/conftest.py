import itertools
import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('GEOCODER_LOOKUP', 'test')
os.environ.setdefault('JOB_QUEUE', 'inline')
os.environ.setdefault('JWT_SECRET_KEY', 'membership-test-secret-key-0123456789')

from membership.database import Base, get_db  # noqa: E402
from membership.jobs.queue import JobQueue, set_queue  # noqa: E402
from membership.models.user import User  # noqa: E402
from membership.services.geocoder import GeocodeResult, StubGeocoder, set_geocoder  # noqa: E402
from membership.services.users import save_user  # noqa: E402

GEOCODE_STUBS = {
    '97201': GeocodeResult(45.505603, -122.6882145, 'OR'),
    'HP2 4HG': GeocodeResult(51.75592890000001, -0.4447103, 'England'),
    '80203': GeocodeResult(39.7312095, -104.9826965, 'CO'),
    '80112': GeocodeResult(39.5807452, -104.8772058, 'CO'),
    '80126': GeocodeResult(39.5446486, -104.9690127, 'CO'),
    '11772': GeocodeResult(40.7706498, -72.9986114, 'NY'),
    '78705': GeocodeResult(30.2961708, -97.7394314, 'TX'),
    '78756': GeocodeResult(30.3205298, -97.7396195, 'TX'),
    '83704': GeocodeResult(43.6301866, -116.2897393, 'ID'),
}


class RecordingQueue(JobQueue):
    def __init__(self):
        self.enqueued = []

    def enqueue(self, job_class, arguments):
        self.enqueued.append((job_class, arguments))

    def job_names(self):
        return [job_class.__name__ for job_class, _ in self.enqueued]


@pytest.fixture
def db():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=[User.__table__])

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=[User.__table__])
        engine.dispose()


@pytest.fixture(autouse=True)
def geocoder():
    stub = StubGeocoder(GEOCODE_STUBS)
    set_geocoder(stub)
    yield stub
    set_geocoder(None)


@pytest.fixture(autouse=True)
def job_queue():
    queue = RecordingQueue()
    set_queue(queue)
    yield queue
    set_queue(None)


@pytest.fixture
def user_factory(db):
    sequence = itertools.count(1)

    class UserFactory:
        @staticmethod
        def build(**overrides) -> User:
            attributes = {
                'email': f'user{next(sequence)}@example.com',
                'password': 'password',
                'zip': '97201',
                'first_name': 'Test',
                'last_name': 'User',
            }
            attributes.update(overrides)
            return User(**attributes)

        @classmethod
        def create(cls, **overrides) -> User:
            return save_user(db, cls.build(**overrides))

    return UserFactory


@pytest.fixture
def client(db, monkeypatch: pytest.MonkeyPatch):
    from fastapi.testclient import TestClient

    from membership.main import app

    monkeypatch.setattr('membership.routes.user_routes.ensure_database_ready', lambda: None)

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
