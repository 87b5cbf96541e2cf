"""Shared base class for tests that drive the app through TestClient."""

import tempfile
import unittest

from fastapi.testclient import TestClient

from beershop.core.config import get_settings
from beershop.core.database import SessionLocal, engine
from beershop.main import create_app
from beershop.models import Base

DEFAULT_PASSWORD = "correct-horse-battery"


def reset_database() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


class ApiTestCase(unittest.TestCase):
    """Fresh schema, fresh app (own rate-limit counters) and a temp upload dir per test."""

    settings_overrides: dict = {}

    def setUp(self) -> None:
        reset_database()
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.upload_dir = tmp.name
        self.settings = get_settings().model_copy(
            update={"UPLOAD_DIR": self.upload_dir, **self.settings_overrides}
        )
        self.app = create_app(self.settings)
        self.client = TestClient(self.app)
        self.db = SessionLocal()
        self.addCleanup(self.db.close)

    def create_user(
        self,
        email: str = "drinker@example.com",
        password: str = DEFAULT_PASSWORD,
        role: str = "user",
        name: str = "Test Drinker",
    ) -> int:
        return self.app.state.credentials.register(
            self.db, name=name, email=email, raw_password=password, role=role
        )

    def login(self, email: str, password: str = DEFAULT_PASSWORD):
        return self.client.post("/login", json={"email": email, "password": password})

    def csrf_headers(self) -> dict[str, str]:
        response = self.client.get("/csrf-token")
        self.assertEqual(response.status_code, 200)
        return {self.settings.CSRF_HEADER_NAME: response.json()["csrfToken"]}

    def sign_in(self, role: str = "user", email: str | None = None) -> dict[str, str]:
        """Create a user with role, log in through the API and return CSRF headers."""
        email = email or f"{role}@example.com"
        self.create_user(email=email, role=role)
        response = self.login(email)
        self.assertEqual(response.status_code, 200, response.text)
        return self.csrf_headers()
