# src/tokengate/db/__init__.py
"""Persistence layer: declarative base, engine and session helpers."""

from .session import Base, SessionLocal, create_tables, engine, get_db

__all__ = ["Base", "SessionLocal", "create_tables", "engine", "get_db"]
