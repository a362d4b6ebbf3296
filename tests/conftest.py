"""
Shared pytest fixtures for the training approval routing test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - org: Small org directory (manager, HRBPs, L&D, CHRO, employees)
    - make_request: Factory for draft TrainingRequest rows
"""

import pytest

from training_workflow import create_app
from training_workflow.models import db as _db
from training_workflow.models.directory import Profile, UserRole
from training_workflow.models.training import TrainingRequest


HQ = "entity-hq"
FIELD = "entity-field"
REMOTE = "entity-remote"  # no HRBP on file


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    return app.test_client()


# ── Directory fixtures ───────────────────────────────────────────────────


def _add_profile(pid, entity_id=None, manager_id=None, roles=("employee",), name=None):
    """Insert a directory profile with its role assignments."""
    profile = Profile(
        id=pid,
        full_name=name or pid.replace("-", " ").title(),
        email=f"{pid}@example.org",
        entity_id=entity_id,
        manager_id=manager_id,
    )
    profile.roles = [UserRole(role=r) for r in roles]
    _db.session.add(profile)
    _db.session.flush()
    return profile


@pytest.fixture()
def add_profile():
    """Factory: add_profile("emp-9", FIELD, "mgr-1", ("employee",)) -> Profile (flushed)."""
    return _add_profile


@pytest.fixture()
def org():
    """
    chro-1 (CHRO, HQ)
      ├── lnd-1      (L&D, HQ)
      ├── hrbp-hq    (HRBP, HQ)
      ├── hrbp-field (HRBP, FIELD)
      └── mgr-1      (Manager, FIELD)
            ├── emp-1       (FIELD)
            └── emp-remote  (REMOTE, no HRBP in entity)
    emp-nomgr (FIELD, no manager on file)
    """
    _add_profile("chro-1", HQ, None, ("chro",))
    _add_profile("lnd-1", HQ, "chro-1", ("l_and_d",))
    _add_profile("hrbp-hq", HQ, "chro-1", ("hrbp",))
    _add_profile("hrbp-field", FIELD, "chro-1", ("hrbp",))
    _add_profile("mgr-1", FIELD, "chro-1", ("manager", "employee"))
    _add_profile("emp-1", FIELD, "mgr-1")
    _add_profile("emp-remote", REMOTE, "mgr-1")
    _add_profile("emp-nomgr", FIELD, None)
    _db.session.commit()


@pytest.fixture()
def make_request():
    """Factory: make_request("emp-1", location="abroad") -> TrainingRequest id."""

    def _make(requester_id, location="local", cost="low", course="Python for Analysts"):
        req = TrainingRequest(
            requester_id=requester_id,
            course_name=course,
            training_location=location,
            cost_level=cost,
        )
        _db.session.add(req)
        _db.session.commit()
        return req.id

    return _make
