"""
Versioned writes shared by the workflow engines.

Every mutation of a versioned row goes through compare_and_set: the UPDATE
is filtered on the version that was read, so a concurrent writer that got
there first leaves zero matched rows and the caller gets
ConcurrentModificationError instead of a lost update.
"""

from typing import Any, Dict, Optional

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.app.core.exceptions import ConcurrentModificationError
from backoffice.app.core.optimistic_lock import validate_version, increment_version
from backoffice.app.core.state_machine import StateMachine


async def compare_and_set(
    db: AsyncSession,
    model,
    entity,
    values: Dict[str, Any],
    expected_version: Optional[int] = None,
) -> int:
    """
    Write `values` to one row and bump its version, guarded by the version.

    Args:
        db: Database session (the caller owns the unit of work)
        model: Mapped class of the row
        entity: Loaded instance; refreshed in place after the write
        values: Column values to set
        expected_version: Version the caller read, if it sent one

    Returns:
        The new version

    Raises:
        ConcurrentModificationError: expected_version is stale, or the row
            changed between our read and our write
    """
    read_version = entity.version
    validate_version(read_version, expected_version)
    new_version = increment_version(read_version)

    result = await db.execute(
        update(model)
        .where(model.id == entity.id, model.version == read_version)
        .values(version=new_version, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        current = await db.scalar(select(model.version).where(model.id == entity.id))
        raise ConcurrentModificationError(current, read_version if expected_version is None else expected_version)

    await db.refresh(entity)
    return new_version


async def apply_transition(
    db: AsyncSession,
    machine: StateMachine,
    model,
    entity,
    to_status,
    values: Optional[Dict[str, Any]] = None,
    expected_version: Optional[int] = None,
) -> int:
    """
    Move an entity to a new status.

    Order: the state machine validates the edge, then the version is
    checked, then status and version are written together.

    Raises:
        InvalidTransitionError: illegal edge
        ConcurrentModificationError: stale version
    """
    machine.validate_transition(entity.status, to_status)
    return await compare_and_set(
        db, model, entity, {"status": to_status, **(values or {})}, expected_version
    )


async def compare_and_delete(
    db: AsyncSession,
    model,
    entity,
    status,
    expected_version: Optional[int] = None,
) -> None:
    """
    Delete one row while it is still at the version and status that were read.

    A concurrent transition that committed first bumps the version, so the
    DELETE matches nothing and the row survives.

    Raises:
        ConcurrentModificationError: expected_version is stale, or the row
            changed between our read and our delete
    """
    read_version = entity.version
    validate_version(read_version, expected_version)

    result = await db.execute(
        delete(model)
        .where(model.id == entity.id, model.version == read_version, model.status == status)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        current = await db.scalar(select(model.version).where(model.id == entity.id))
        raise ConcurrentModificationError(current, read_version if expected_version is None else expected_version)

    db.expunge(entity)
