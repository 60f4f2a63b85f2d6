import pytest

from gemclaw.infrastructure.database import AppDatabase


@pytest.fixture
def db() -> AppDatabase:
    """Create an in-memory database for testing."""
    app_db = AppDatabase()
    app_db._init_test()
    return app_db


@pytest.fixture(autouse=True)
def _isolated_dirs(tmp_path, monkeypatch):
    """Point group and data directories at a temp dir so tests never touch the repo."""
    import gemclaw.groups.paths as paths

    monkeypatch.setattr(paths, "GROUPS_DIR", tmp_path / "groups")
    monkeypatch.setattr(paths, "DATA_DIR", tmp_path / "data")
