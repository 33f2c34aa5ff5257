"""Tests for the pure parts of run_migrations.py."""

from run_migrations import (
    AppliedMigration,
    MIGRATIONS_DIR,
    discover_migrations,
    file_checksum,
    plan_migrations,
)


def test_checksum_is_stable():
    assert file_checksum("select 1;") == file_checksum("select 1;")
    assert file_checksum("select 1;") != file_checksum("select 2;")
    assert len(file_checksum("")) == 16


def test_discover_orders_by_name(tmp_path):
    (tmp_path / "002_b.sql").write_text("select 2;")
    (tmp_path / "001_a.sql").write_text("select 1;")
    (tmp_path / "notes.txt").write_text("ignored")

    migrations = discover_migrations(tmp_path)

    assert [m.name for m in migrations] == ["001_a.sql", "002_b.sql"]
    assert migrations[0].checksum == file_checksum("select 1;")


def test_discover_missing_directory(tmp_path):
    assert discover_migrations(tmp_path / "missing") == []


def test_bundled_schema_is_discovered():
    names = [m.name for m in discover_migrations(MIGRATIONS_DIR)]
    assert "001_users.sql" in names


def test_plan(tmp_path):
    (tmp_path / "001_a.sql").write_text("select 1;")
    (tmp_path / "002_b.sql").write_text("select 2;")
    (tmp_path / "003_c.sql").write_text("select 3;")
    available = discover_migrations(tmp_path)
    applied = {
        "001_a.sql": AppliedMigration("001_a.sql", file_checksum("select 1;"), None),
        "002_b.sql": AppliedMigration("002_b.sql", file_checksum("edited"), None),
    }

    pending, changed = plan_migrations(available, applied)

    assert [m.name for m in pending] == ["003_c.sql"]
    assert [m.name for m in changed] == ["002_b.sql"]
