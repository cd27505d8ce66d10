"""Source database models and read access."""

from .database import Database, get_engine, init_db, make_session_factory, session_scope
from .models import Base, Movie, Person

__all__ = [
    "Base",
    "Database",
    "Movie",
    "Person",
    "get_engine",
    "init_db",
    "make_session_factory",
    "session_scope",
]
