from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from scripts import init_db


class _Cursor:
    def __init__(self, executed: list[str]) -> None:
        self._executed = executed

    def __enter__(self) -> _Cursor:
        return self

    def __exit__(self, *_exc: Any) -> None:
        return None

    def execute(self, sql: str) -> None:
        self._executed.append(sql)


class _Connection:
    def __init__(self) -> None:
        self.executed: list[str] = []
        self.commits = 0

    def __enter__(self) -> _Connection:
        return self

    def __exit__(self, *_exc: Any) -> None:
        return None

    def cursor(self) -> _Cursor:
        return _Cursor(self.executed)

    def commit(self) -> None:
        self.commits += 1


@pytest.fixture
def connection(monkeypatch: pytest.MonkeyPatch) -> _Connection:
    conn = _Connection()
    monkeypatch.setattr(init_db.psycopg, "connect", lambda _dsn: conn)
    return conn


def test_applies_scripts_in_lexical_order(tmp_path: Path, connection: _Connection) -> None:
    (tmp_path / "002_views.sql").write_text("SELECT 2;", encoding="utf-8")
    (tmp_path / "001_tables.sql").write_text("SELECT 1;", encoding="utf-8")

    init_db.main(["--sql-dir", str(tmp_path)])

    assert connection.executed == ["SELECT 1;", "SELECT 2;"]
    assert connection.commits == 1


def test_refresh_views_only(tmp_path: Path, connection: _Connection) -> None:
    init_db.main(["--sql-dir", str(tmp_path), "--refresh-views"])

    assert connection.executed == [
        "REFRESH MATERIALIZED VIEW nops_mvt",
        "REFRESH MATERIALIZED VIEW bangunans_mvt",
    ]


def test_missing_scripts_raise(tmp_path: Path, connection: _Connection) -> None:
    with pytest.raises(RuntimeError, match="No SQL scripts found"):
        init_db.main(["--sql-dir", str(tmp_path)])
