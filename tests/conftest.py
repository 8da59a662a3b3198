import pytest


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep tests away from the real ~/.sqlsmo.cfg and SQLSMO_* settings."""
    monkeypatch.setenv("HOME", str(tmp_path))
    for key in (
        "SQLSMO_CONNECTION_STRING",
        "SQLSMO_DATABASE",
        "SQLSMO_DEFAULT_SCHEMA",
        "SQLSMO_HISTORY_SCHEMA",
        "SQLSMO_SCHEMA_PATH",
        "SQLSMO_ODBC_DRIVER",
        "SQLSMO_PROFILE",
    ):
        monkeypatch.delenv(key, raising=False)
