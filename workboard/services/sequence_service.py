"""Sequence service — atomic per-project counter behind task keys.

The increment is a single INSERT ... ON CONFLICT DO UPDATE ... RETURNING
statement so two concurrent callers for one project never see the same
number. Dialects without that upsert take a row lock instead.

Functions flush but do NOT commit — the caller commits.
"""

import logging

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from workboard.errors import NotFound
from workboard.extensions import db
from workboard.models.project import Project, ProjectSequence

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def next_sequence(project_id):
    """Increment and return the project's last_sequence.

    Creates the counter row at 1 when it does not exist yet.
    """
    table = ProjectSequence.__table__
    dialect = db.session.get_bind().dialect.name
    insert = _UPSERT_DIALECTS.get(dialect)

    if insert is not None:
        stmt = (
            insert(table)
            .values(project_id=project_id, last_sequence=1)
            .on_conflict_do_update(
                index_elements=[table.c.project_id],
                set_={"last_sequence": table.c.last_sequence + 1},
            )
            .returning(table.c.last_sequence)
        )
        return db.session.execute(stmt).scalar_one()

    # Fallback: lock the counter row for the rest of the transaction
    current = db.session.execute(
        select(table.c.last_sequence)
        .where(table.c.project_id == project_id)
        .with_for_update()
    ).scalar_one_or_none()
    if current is None:
        db.session.execute(
            table.insert().values(project_id=project_id, last_sequence=1)
        )
        return 1
    db.session.execute(
        table.update()
        .where(table.c.project_id == project_id)
        .values(last_sequence=table.c.last_sequence + 1)
    )
    return current + 1


def next_key(project_id):
    """Return the next human-readable task key, e.g. ``PROJ-17``.

    Raises:
        NotFound: If the project does not exist.
    """
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFound(f"Project {project_id} not found.")

    # Pending project rows must exist before the counter row references them
    db.session.flush()
    number = next_sequence(project_id)
    key = f"{(project.slug or 'PROJ').upper()}-{number}"
    logger.debug(f"Issued key {key} for project {project_id}")
    return key


def current_sequence(project_id):
    """Read the counter without incrementing it (0 if never used)."""
    value = db.session.execute(
        select(ProjectSequence.last_sequence).where(
            ProjectSequence.project_id == project_id
        )
    ).scalar_one_or_none()
    return value or 0
