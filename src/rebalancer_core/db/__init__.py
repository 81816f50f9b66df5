"""Database layer — engine, session, ORM base."""

from rebalancer_core.db.base import Base
from rebalancer_core.db.engine import get_session, init_engine

__all__ = ["Base", "get_session", "init_engine"]
