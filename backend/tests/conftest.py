import pytest

from backend.moodflow import create_app
from backend.moodflow.errors import AnalysisError
from backend.moodflow.models import db
from backend.moodflow.services.session_store import SessionStore
from backend.moodflow.utils.analysis_client import AnalysisClient
from backend.moodflow.utils.payment_gateway import MockMpesaGateway

PASSWORD = "password123"

PROFILE = {
    "first_name": "Amani",
    "last_name": "Otieno",
    "date_of_birth": "1994-03-12",
    "location": "Nairobi",
    "interests": ["hiking", "reading"],
}


class FakeAnalysisClient(AnalysisClient):
    """Counts calls and returns canned analyses."""

    def __init__(self):
        self.calls = []
        self.fail = False
        self.sentiment = "Positive"
        self.emotions = [{"emotion": "Joy", "score": 80}]

    def analyze(self, text):
        self.calls.append(("analyze", text))
        if self.fail:
            raise AnalysisError("Failed to get AI analysis. Please try again later.")
        return {
            "overallSentiment": self.sentiment,
            "emotions": list(self.emotions),
            "summary": f"Summary of: {text[:20]}",
            "keywords": text.lower().split()[:3],
        }

    def analyze_triggers(self, entries):
        self.calls.append(("analyze_triggers", len(entries)))
        if self.fail:
            raise AnalysisError("Failed to get AI trigger analysis.")
        return {"positive": ["walks"], "negative": ["deadlines"]}

    def recommend(self, entries):
        self.calls.append(("recommend", len(entries)))
        if self.fail:
            raise AnalysisError("Failed to get AI recommendations.")
        return ["Take a short walk."]

    @property
    def analyze_calls(self):
        return [call for call in self.calls if call[0] == "analyze"]


@pytest.fixture()
def app():
    app = create_app({
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "LOG_LEVEL": "WARNING",
    })
    app.analysis_client = FakeAnalysisClient()
    app.payment_gateway = MockMpesaGateway(delay=0)

    ctx = app.app_context()
    ctx.push()
    db.create_all()
    try:
        yield app
    finally:
        db.session.remove()
        db.drop_all()
        ctx.pop()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def analysis_client(app):
    return app.analysis_client


def make_session(app, email="amani@moodflow.app", complete=True, premium=False):
    session = SessionStore(app.auth_backend)
    session.signup(email, PASSWORD)
    if complete:
        session.update_profile(PROFILE)
    if premium:
        session.upgrade_to_premium({"transaction_id": f"MPESA_TEST_{email}", "amount": 500})
    return session


@pytest.fixture()
def session(app):
    """Signed-up free user with a completed profile."""
    return make_session(app)


@pytest.fixture()
def premium_session(app):
    return make_session(app, email="zawadi@moodflow.app", premium=True)


def signup_headers(client, email="amani@moodflow.app", complete=True):
    response = client.post("/api/auth/signup", json={"email": email, "password": PASSWORD})
    assert response.status_code == 201, response.get_json()
    headers = {"Authorization": f"Bearer {response.get_json()['access_token']}"}
    if complete:
        response = client.put("/api/profile", json=PROFILE, headers=headers)
        assert response.status_code == 200, response.get_json()
    return headers


@pytest.fixture()
def auth_headers(client):
    return signup_headers(client)


@pytest.fixture()
def session_factory(app):
    def factory(email, complete=True, premium=False):
        return make_session(app, email=email, complete=complete, premium=premium)
    return factory


@pytest.fixture()
def headers_factory(client):
    def factory(email, complete=True):
        return signup_headers(client, email=email, complete=complete)
    return factory


@pytest.fixture()
def profile_data():
    return dict(PROFILE)
