import asyncio
import os

# Must be set before anything under app/ reads settings
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_assignment.db")
os.environ["OPENAI_API_KEY"] = ""
os.environ["SMTP_HOST"] = ""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from app.core.db import Base
from app.core.store import TicketStore
from app.core.workflow import AssignmentWorkflow
from app.models.ticket import Ticket
from app.models.user import User

SQLALCHEMY_DATABASE_URL = "sqlite:///./test_assignment.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeClassifier:
    def __init__(self, result=None, error=None, delay=0.0):
        self.result = result
        self.error = error
        self.delay = delay
        self.calls = []

    async def classify(self, title, description):
        self.calls.append((title, description))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


class RecordingNotifier:
    def __init__(self, error=None):
        self.error = error
        self.sent = []

    async def send(self, to_email, subject, body):
        self.sent.append({"to": to_email, "subject": subject, "body": body})
        if self.error is not None:
            raise self.error


@pytest.fixture(scope="function")
def db_session():
    # Create the tables
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        # Drop the tables after the test
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_user(db_session):
    def _make_user(email, role="user", skills=None):
        user = User(email=email, role=role, skills=skills or [])
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make_user


@pytest.fixture
def make_ticket(db_session, make_user):
    def _make_ticket(title="Cannot login", description="Login page returns 500 after SSO redirect", created_by=None):
        if created_by is None:
            created_by = make_user(f"customer{db_session.query(User).count()}@example.com").id
        return TicketStore(db_session).create(title=title, description=description, created_by=created_by)
    return _make_ticket


@pytest.fixture
def make_workflow():
    def _make_workflow(classifier=None, notifier=None, **options):
        options.setdefault("retry_delay", 0)
        options.setdefault("classifier_timeout", 1.0)
        return AssignmentWorkflow(
            TestingSessionLocal,
            classifier if classifier is not None else FakeClassifier(),
            notifier if notifier is not None else RecordingNotifier(),
            **options,
        )
    return _make_workflow


@pytest.fixture
def reload_ticket(db_session):
    """Read the ticket as committed by other sessions."""
    def _reload(ticket_id):
        db_session.expire_all()
        return db_session.query(Ticket).filter(Ticket.id == ticket_id).first()
    return _reload
