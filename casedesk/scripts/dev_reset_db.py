from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

ALEMBIC_INI = Path(__file__).resolve().parents[2] / "alembic.ini"


def _load_database_url(cli_url: str | None) -> str:
    if cli_url:
        return cli_url
    env_url = os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URL")
    if not env_url:
        raise RuntimeError("Pass --url or set DATABASE_URL.")
    return env_url


def _alembic_config(database_url: str) -> Config:
    config = Config(str(ALEMBIC_INI))
    config.set_main_option("sqlalchemy.url", database_url)
    return config


def _reset_postgres_db(database_url: str) -> None:
    url = make_url(database_url)
    if not url.database:
        raise RuntimeError("Postgres URL is missing a database name.")

    engine = create_engine(url.set(database="postgres"), future=True, isolation_level="AUTOCOMMIT")
    try:
        with engine.connect() as conn:
            conn.execute(
                text(
                    "SELECT pg_terminate_backend(pid) FROM pg_stat_activity "
                    "WHERE datname = :db_name AND pid <> pg_backend_pid()"
                ),
                {"db_name": url.database},
            )
            conn.execute(text(f"DROP DATABASE IF EXISTS \"{url.database}\""))
            conn.execute(text(f"CREATE DATABASE \"{url.database}\""))
    finally:
        engine.dispose()


def _reset_sqlite_db(database_url: str) -> None:
    url = make_url(database_url)
    if url.database and url.database != ":memory:":
        db_path = Path(url.database)
        if db_path.exists():
            db_path.unlink()


def _seed_admin(database_url: str, email: str) -> None:
    os.environ.setdefault("DATABASE_URL", database_url)
    from casedesk.app.services.user_service import seed_super_admin

    engine = create_engine(database_url, future=True)
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    session = Session()
    try:
        user = seed_super_admin(session, email)
        print(f"Super admin: {user.email} ({user.id})")
    finally:
        session.close()
        engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Drop and migrate the development database.")
    parser.add_argument("--url", help="Override the database URL.")
    parser.add_argument("--yes", action="store_true", help="Confirm destructive reset.")
    parser.add_argument("--admin-email", help="Seed a super admin with this email.")
    args = parser.parse_args()

    if not args.yes:
        print("Refusing to reset database without --yes.")
        return 1

    database_url = _load_database_url(args.url)
    backend = make_url(database_url).get_backend_name()
    if backend.startswith("postgres"):
        _reset_postgres_db(database_url)
    elif backend.startswith("sqlite"):
        _reset_sqlite_db(database_url)
    else:
        print(f"Unsupported database backend: {backend}")
        return 1

    command.upgrade(_alembic_config(database_url), "head")

    if args.admin_email:
        _seed_admin(database_url, args.admin_email)

    print(f"Database reset: {make_url(database_url).render_as_string(hide_password=True)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
