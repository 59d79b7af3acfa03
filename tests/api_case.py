import unittest

from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from researchhub.auth.dependencies import get_email_service, get_token_issuer
from researchhub.core.database import get_session
from researchhub.core.email import EmailService, SendResult
from researchhub.core.rate_limit import RateLimiter
from researchhub.main import app
from researchhub.models.User import User


class RecordingEmailService(EmailService):
    """
    Keeps outgoing mail in memory. Set `fail` to simulate a transport error.
    """

    def __init__(self):
        super().__init__()
        self.sent = []
        self.fail = False

    def send(self, to, template, **data):
        if self.fail:
            return SendResult(ok=False, error="smtp down")
        self.sent.append({"to": to, "template": template, **data})
        return SendResult(ok=True)

    def last(self, template):
        matching = [m for m in self.sent if m["template"] == template]
        return matching[-1] if matching else None


class ApiTestCase(unittest.TestCase):
    password = "longenough1"

    def setUp(self):
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        SQLModel.metadata.create_all(self.engine)

        def override_session():
            with Session(self.engine) as session:
                yield session

        self.outbox = RecordingEmailService()
        app.dependency_overrides[get_session] = override_session
        app.dependency_overrides[get_email_service] = lambda: self.outbox
        self.reset_rate_limit()
        self.client = TestClient(app)
        self.issuer = get_token_issuer()

    def tearDown(self):
        app.dependency_overrides.clear()
        self.engine.dispose()

    def reset_rate_limit(self):
        app.state.auth_rate_limiter = RateLimiter(max_attempts=5, window_ms=15 * 60 * 1000)
        app.state.api_rate_limiter = RateLimiter(max_attempts=100, window_ms=15 * 60 * 1000)

    def db_user(self, email):
        with Session(self.engine) as session:
            return session.exec(select(User).where(User.email == email)).first()

    def register(self, email="a@example.com", password=None, full_name="Ada Lovelace", **extra):
        payload = {"email": email, "password": password or self.password, "fullName": full_name, **extra}
        return self.client.post("/api/auth/register", json=payload)

    def login(self, email="a@example.com", password=None, **extra):
        payload = {"email": email, "password": password or self.password, **extra}
        return self.client.post("/api/auth/login", json=payload)

    def register_and_login(self, email="a@example.com"):
        resp = self.register(email=email)
        self.assertEqual(resp.status_code, 201, resp.text)
        resp = self.login(email=email)
        self.assertEqual(resp.status_code, 200, resp.text)
        return resp.json()

    @staticmethod
    def bearer(token):
        return {"Authorization": f"Bearer {token}"}
