import os
import shutil
import tempfile
from types import SimpleNamespace
from typing import Optional

import pytest
from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

import qsfilter.config as config_module
from qsfilter.config import QsfilterConfig
from qsfilter.db import Database


class Base(DeclarativeBase):
    pass


class Team(Base):
    __tablename__ = 'teams'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)


class User(Base):
    __tablename__ = 'users'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    team_id: Mapped[Optional[int]] = mapped_column(ForeignKey('teams.id'), nullable=True)

    team: Mapped[Optional[Team]] = relationship()


SAMPLE_USERS = [
    # id, name, age, status, balance, team_id
    (1, "alice", 34, "active", 100, 1),
    (2, "bob", 27, "trial", 50, 1),
    (3, "carol", 45, "active", 200, 2),
    (4, "dave", 19, "inactive", 0, None),
    (5, "erin", 52, "active", 150, 2),
]


@pytest.fixture(autouse=True)
def isolated_config():
    """Use default configuration, ignoring user and local config files."""
    config_module._config = QsfilterConfig()
    yield config_module._config
    config_module._config = None


@pytest.fixture
def models():
    """ORM models used by executor tests."""
    return SimpleNamespace(Base=Base, Team=Team, User=User)


@pytest.fixture
def temp_db_path():
    """Create a temporary database file path."""
    temp_dir = tempfile.mkdtemp(prefix="qsfilter_test_db_")
    yield os.path.join(temp_dir, "test.db")
    shutil.rmtree(temp_dir)


@pytest.fixture
def populated_db(temp_db_path):
    """Database with two teams and five users."""
    db = Database(path=temp_db_path)
    Base.metadata.create_all(db.engine)

    with db.session() as session:
        session.add_all([Team(id=1, name="red"), Team(id=2, name="blue")])
        session.add_all([
            User(id=id, name=name, age=age, status=status, balance=balance, team_id=team_id)
            for id, name, age, status, balance, team_id in SAMPLE_USERS
        ])

    yield db
    db.close()


@pytest.fixture
def session(populated_db):
    """Session on the populated database."""
    with populated_db.session() as session:
        yield session
