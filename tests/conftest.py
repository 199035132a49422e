import os
import tempfile

# Point the app at a throwaway SQLite file before anything imports settings
_test_tmp_dir = tempfile.mkdtemp(prefix="matrimony_test_")
os.environ["DATABASE_URL"] = f"sqlite:///{_test_tmp_dir}/test.db"
os.environ["LOG_FILE"] = os.path.join(_test_tmp_dir, "logs.txt")
os.environ["API_KEY"] = ""
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only-do-not-use-in-production")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from matrimony.core.dependencies import get_notifier  # noqa: E402
from matrimony.db.base import Base  # noqa: E402
from matrimony.db.session import SessionLocal, engine  # noqa: E402
from matrimony.main import app  # noqa: E402
from matrimony.schemas.auth_schemas import RegisterRequest  # noqa: E402
from matrimony.services.account_service import register_account  # noqa: E402
from matrimony.utils.email import Notifier  # noqa: E402

PASSWORD = "OldPass1!"


class RecordingNotifier(Notifier):
    """Captures codes instead of emailing them."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, email, code, flow_kind, expire_minutes):
        if self.fail:
            return False
        self.sent.append({"email": email, "code": code, "flow_kind": flow_kind, "ttl": expire_minutes})
        return True

    @property
    def last_code(self):
        return self.sent[-1]["code"]


@pytest.fixture(autouse=True)
def fresh_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(notifier):
    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def account(db):
    return register_account(
        db,
        RegisterRequest(
            email="a@x.com",
            password=PASSWORD,
            first_name="Asha",
            last_name="Rao",
            primary_phone="+15550001",
        ),
    )
