from __future__ import annotations

import argparse
from pathlib import Path

import psycopg

from nop_gis.settings import get_settings

MVT_VIEWS = ("nops_mvt", "bangunans_mvt")


def run_sql_file(conn: psycopg.Connection, sql_path: Path) -> None:
    content = sql_path.read_text(encoding="utf-8")
    with conn.cursor() as cur:
        cur.execute(content)


def refresh_mvt_views(conn: psycopg.Connection) -> None:
    with conn.cursor() as cur:
        for view in MVT_VIEWS:
            cur.execute(f"REFRESH MATERIALIZED VIEW {view}")


def _dsn() -> str:
    return get_settings().resolved_database_url.replace("+psycopg", "")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Apply db/sql scripts to the geometry store.")
    parser.add_argument("--sql-dir", type=Path, default=Path("db/sql"))
    parser.add_argument(
        "--refresh-views",
        action="store_true",
        help="Only refresh the pre-projected vector tile views.",
    )
    args = parser.parse_args(argv)

    with psycopg.connect(_dsn()) as conn:
        if args.refresh_views:
            refresh_mvt_views(conn)
            conn.commit()
            print(f"Refreshed {len(MVT_VIEWS)} materialized views.")
            return

        scripts = sorted(args.sql_dir.glob("*.sql"))
        if not scripts:
            raise RuntimeError(f"No SQL scripts found in {args.sql_dir}.")
        for script in scripts:
            run_sql_file(conn, script)
        conn.commit()

    print(f"Applied {len(scripts)} SQL scripts.")


if __name__ == "__main__":
    main()
