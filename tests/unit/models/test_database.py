"""Tests for database management and schema."""

from pathlib import Path

import pytest

from photogallery.models.database import DatabaseManager, create_database, get_database_manager
from photogallery.models.schema import REQUIRED_COLUMNS, get_schema_statements, validate_schema_compatibility


class TestSchema:
    def test_schema_is_compatible(self):
        assert validate_schema_compatibility()

    def test_statements_include_every_table(self):
        statements = "\n".join(get_schema_statements())
        for table in REQUIRED_COLUMNS:
            assert f"CREATE TABLE IF NOT EXISTS {table}" in statements


class TestDatabaseManager:
    def test_create_database(self, tmp_path: Path):
        db_path = tmp_path / "nested" / "gallery.db"

        with create_database(str(db_path)) as db:
            assert db.verify_schema()
            columns = {column["name"] for column in db.get_table_info("photos")}

        assert db_path.exists()
        assert columns == REQUIRED_COLUMNS["photos"]

    def test_fetch_dicts(self, tmp_path: Path):
        with create_database(str(tmp_path / "gallery.db")) as db:
            db.execute_query(
                "INSERT INTO messages (id, gallery_owner_id, name, message, color) VALUES (?, ?, ?, ?, ?)",
                ("m1", "u1", "Ken", "Hi", "from-pink-200 to-rose-200"),
            )
            rows = db.fetch_dicts("SELECT id, name FROM messages WHERE gallery_owner_id = ?", ("u1",))

        assert rows == [{"id": "m1", "name": "Ken"}]

    def test_context_manager_closes_connection(self, tmp_path: Path):
        db = create_database(str(tmp_path / "gallery.db"))
        with db:
            db.connect()
        assert db._connection is None

    def test_verify_schema_on_empty_database(self, tmp_path: Path):
        with DatabaseManager(str(tmp_path / "empty.db")) as db:
            assert not db.verify_schema()

    def test_get_table_info_unknown_table(self, tmp_path: Path):
        with create_database(str(tmp_path / "gallery.db")) as db:
            with pytest.raises(ValueError, match="Unknown table"):
                db.get_table_info("secrets")

    def test_get_database_manager_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            get_database_manager(str(tmp_path / "missing.db"), create_if_missing=False)

    def test_get_database_manager_repairs_schema(self, tmp_path: Path):
        db_path = tmp_path / "partial.db"
        with DatabaseManager(str(db_path)) as db:
            db.execute_query("CREATE TABLE unrelated (id INTEGER)")

        with get_database_manager(str(db_path)) as db:
            assert db.verify_schema()
