"""
Tests for qsfilter/db.py.
"""
import pytest
from sqlalchemy import select
from sqlalchemy.exc import NoSuchTableError

from qsfilter.db import Database
from qsfilter.query import QueryExecutor, compile_filter


class TestDatabase:
    """Test the database handle."""

    def test_sqlite_url_from_path(self, temp_db_path):
        db = Database(path=temp_db_path)
        assert db.url == f"sqlite:///{temp_db_path}"
        db.close()

    def test_url_overrides_path(self):
        db = Database(path="ignored.db", url="sqlite://")
        assert db.url == "sqlite://"
        db.close()

    def test_reflect_table(self, populated_db):
        users = populated_db.reflect_table("users")
        assert "age" in users.c
        assert populated_db.reflect_table("users") is users

    def test_reflect_missing_table(self, populated_db):
        with pytest.raises(NoSuchTableError):
            populated_db.reflect_table("missing")

    def test_session_rolls_back_on_error(self, populated_db, models):
        with pytest.raises(RuntimeError):
            with populated_db.session() as session:
                session.add(models.Team(id=3, name="green"))
                session.flush()
                raise RuntimeError("boom")

        with populated_db.session() as session:
            assert session.execute(select(models.Team).where(models.Team.id == 3)).first() is None

    def test_executor_uses_config_page_sizes(self, populated_db, isolated_config):
        isolated_config.default_page_size = 3
        isolated_config.max_page_size = 4

        with populated_db.executor() as executor:
            assert isinstance(executor, QueryExecutor)
            assert executor.default_page_size == 3
            assert executor.max_page_size == 4
            result = executor.paginate(populated_db.reflect_table("users"), compile_filter("orderByASC=id"))
            assert [row.id for row in result] == [1, 2, 3]
