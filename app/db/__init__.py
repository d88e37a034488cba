"""Relational store wiring (async SQLAlchemy engine, sessions, column types)."""
