"""
Helpers for choosing dialect-specific SQL from a bound session.
"""

from __future__ import annotations

from sqlalchemy.exc import UnboundExecutionError
from sqlalchemy.orm import Session

UPSERT_DIALECTS = frozenset({"postgresql", "sqlite"})


def get_dialect_name(session: Session, default: str = "sqlite") -> str:
    """
    Return the SQLAlchemy dialect name for the session's bind.

    Falls back to ``default`` when the session is not bound.
    """
    try:
        bind = session.get_bind()
    except UnboundExecutionError:
        return default
    dialect = getattr(bind, "dialect", None)
    return getattr(dialect, "name", None) or default


def supports_upsert(session: Session) -> bool:
    """Whether INSERT .. ON CONFLICT .. RETURNING is available for this session."""
    return get_dialect_name(session) in UPSERT_DIALECTS
