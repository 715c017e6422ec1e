"""Database connection and migration management."""

import logging
import re
from pathlib import Path

from sqlalchemy import MetaData, inspect, text

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory
from app.extensions import db

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Initialize database tables.

    Only creates tables if they don't exist. Safe to call multiple times.
    """
    # Import all models to ensure they're registered with SQLAlchemy
    import app.models  # noqa: F401

    db.create_all()


def check_db_connection() -> bool:
    """Check if database connection is working."""
    try:
        result = db.session.execute(text("SELECT 1"))
        return result.scalar() == 1
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False


def _get_alembic_config() -> Config:
    """Get Alembic configuration bound to the current Flask database URL."""
    # alembic.ini lives in the project root (parent of app/)
    alembic_cfg_path = Path(__file__).parent.parent / "alembic.ini"

    config = Config(str(alembic_cfg_path))
    config.set_main_option("script_location", str(Path(__file__).parent.parent / "alembic"))
    # Escape % for configparser interpolation
    config.set_main_option("sqlalchemy.url", db.engine.url.render_as_string(hide_password=False).replace("%", "%%"))

    return config


def get_current_revision() -> str | None:
    """Get current database revision from Alembic version table."""
    inspector = inspect(db.engine)
    if "alembic_version" not in inspector.get_table_names():
        return None

    with db.engine.connect() as connection:
        row = connection.execute(text("SELECT version_num FROM alembic_version")).fetchone()
        return row[0] if row else None


def get_pending_migrations() -> list[str]:
    """Get list of pending migration revisions in the order they apply."""
    script = ScriptDirectory.from_config(_get_alembic_config())
    head_rev = script.get_current_head()
    if not head_rev:
        return []

    current_rev = get_current_revision()
    if current_rev == head_rev:
        return []

    revisions = [
        rev.revision
        for rev in script.walk_revisions(base=current_rev or "base", head=head_rev)
        if rev.revision != current_rev
    ]
    revisions.reverse()
    return revisions


def drop_all_tables() -> None:
    """Drop all tables including the Alembic version table."""
    metadata = MetaData()
    metadata.reflect(bind=db.engine)
    metadata.drop_all(bind=db.engine)


def _get_migration_info(script_dir: ScriptDirectory, revision: str) -> tuple[str, str]:
    """Extract short revision and description from a revision file."""
    rev_obj = script_dir.get_revision(revision)
    if not rev_obj or not rev_obj.path:
        return revision, "Unknown migration"

    migration_file = Path(rev_obj.path)
    if migration_file.exists():
        docstring_match = re.search(r'"""([^"]+)"""', migration_file.read_text())
        if docstring_match:
            return revision[:7], docstring_match.group(1).strip().splitlines()[0]

    return revision[:7], rev_obj.doc or "Migration"


def upgrade_database(recreate: bool = False) -> list[tuple[str, str]]:
    """Upgrade database with progress reporting.

    Args:
        recreate: If True, drop all tables first

    Returns:
        List of (revision, description) tuples for applied migrations
    """
    config = _get_alembic_config()
    script = ScriptDirectory.from_config(config)
    applied_migrations: list[tuple[str, str]] = []

    if recreate:
        print("🗑️  Dropping all tables...")
        drop_all_tables()
        print("✅ All tables dropped")

    pending = get_pending_migrations()
    if not pending:
        return applied_migrations

    with db.engine.begin() as connection:
        config.attributes["connection"] = connection

        for revision in pending:
            rev_short, description = _get_migration_info(script, revision)
            print(f"⚡ Applying schema {rev_short} - {description}")

            try:
                command.upgrade(config, revision)
                applied_migrations.append((rev_short, description))
            except Exception as e:
                print(f"❌ Failed to apply migration {rev_short}: {e}")
                raise

    return applied_migrations
