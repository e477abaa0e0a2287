"""Check-then-act helpers shared by the start and settlement paths.

Every mutating flow re-reads one designated field straight from the store
immediately before its write, and writes through a conditional UPDATE keyed
on the value it expects. A write that matches no row means another caller
got there first; the caller treats that as "already done" and returns the
stored record instead of repeating the side effect. Terminal fields are
always written last.
"""
from typing import Any, Dict

from sqlalchemy import select, update

from gammon import db


def _conditions(model, expected: Dict[str, Any]):
    conds = []
    for name, value in expected.items():
        column = getattr(model, name)
        conds.append(column.is_(None) if value is None else column == value)
    return conds


def read_field(model, pk, name: str):
    """Fresh single-column read that bypasses the session's identity map."""
    column = getattr(model, name)
    return db.session.execute(select(column).where(model.id == pk)).scalar_one_or_none()


def already_reached(model, pk, name: str, desired) -> bool:
    return read_field(model, pk, name) == desired


def compare_and_set(model, pk, expected: Dict[str, Any], values: Dict[str, Any], commit: bool = True) -> bool:
    """Apply ``values`` only if the row still holds ``expected``.

    Returns True when this caller's write landed. On a lost race the session
    is rolled back, discarding any pending changes staged alongside it.
    With ``commit=False`` the caller owns the commit of a landed write.
    """
    stmt = (
        update(model)
        .where(model.id == pk, *_conditions(model, expected))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    landed = db.session.execute(stmt).rowcount == 1
    if not landed:
        db.session.rollback()
        return False
    if commit:
        db.session.commit()
    return True
