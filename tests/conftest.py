import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from expense_splitter.db import get_session, init_db
from expense_splitter.main import app
from expense_splitter.models.group import Group, GroupMember
from expense_splitter.models.user import User
from expense_splitter.routes.group import require_user


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def seed(session):
    """Alice owns a group with Bob and Carol; Dave is not a member."""
    users = {name: User(username=name, email=f"{name}@example.com") for name in ("alice", "bob", "carol", "dave")}
    for u in users.values():
        session.add(u)
    session.commit()
    ids = {name: u.id for name, u in users.items()}

    group = Group(name="Trip", created_by=ids["alice"])
    session.add(group)
    session.commit()
    ids["group"] = group.id

    session.add(GroupMember(group_id=group.id, user_id=ids["alice"], role="owner"))
    session.add(GroupMember(group_id=group.id, user_id=ids["bob"]))
    session.add(GroupMember(group_id=group.id, user_id=ids["carol"]))
    session.commit()
    return ids


@pytest.fixture
def login(seed):
    current = {"user": {"id": seed["alice"], "username": "alice"}}

    def login_as(name):
        current["user"] = {"id": seed[name], "username": name}

    login_as.current = current
    return login_as


@pytest.fixture
def client(engine, login):
    def session_override():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = session_override
    app.dependency_overrides[require_user] = lambda: login.current["user"]
    yield TestClient(app)
    app.dependency_overrides.clear()
