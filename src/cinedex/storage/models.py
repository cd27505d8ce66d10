"""SQLAlchemy models for the Cinedex source database.

Defines the two indexed entities: Movie and Person.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""


class Movie(Base):
    """A movie record as stored in the source database."""

    __tablename__ = "movies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(64), unique=True)
    title: Mapped[str] = mapped_column(String(512))
    original_title: Mapped[Optional[str]] = mapped_column(String(512), default=None)
    # Free-text keywords, space or comma separated
    keywords: Mapped[Optional[str]] = mapped_column(Text, default=None)
    poster: Mapped[Optional[str]] = mapped_column(String(2048), default=None)
    runtime: Mapped[Optional[int]] = mapped_column(Integer, default=None)
    movie_type: Mapped[Optional[str]] = mapped_column(String(128), default=None)
    production_year: Mapped[Optional[int]] = mapped_column(Integer, default=None)
    user_rating: Mapped[Optional[float]] = mapped_column(Float, default=None)
    press_rating: Mapped[Optional[float]] = mapped_column(Float, default=None)


class Person(Base):
    """A person (actor, director, ...) as stored in the source database."""

    __tablename__ = "persons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(64), unique=True)
    full_name: Mapped[str] = mapped_column(String(512))
    sex: Mapped[Optional[str]] = mapped_column(String(16), default=None)
    photo_url: Mapped[Optional[str]] = mapped_column(String(2048), default=None)
    birth_date: Mapped[Optional[str]] = mapped_column(String(32), default=None)
    birth_place: Mapped[Optional[str]] = mapped_column(String(512), default=None)
    # Comma separated list, e.g. "Actor, Director"
    activity: Mapped[Optional[str]] = mapped_column(String(512), default=None)
