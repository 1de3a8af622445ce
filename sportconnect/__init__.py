"""
SportConnect Backend — Application Package Initializer
======================================================

What: Marks the `sportconnect` directory as a Python package.
Who:  Imported by uvicorn (`sportconnect.main:app`), Alembic, pytest and the API client.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Feed, Posts, Profiles)  │  ← Orchestration, validation
    ├─────────────────────────────────────┤
    │  Core: Scorer + Toggle Reconciler   │  ← Pure ranking, optimistic toggles
    ├─────────────────────────────────────┤
    │   Ports: ToggleStore (SQL / HTTP)   │  ← Atomic read-modify-write
    ├─────────────────────────────────────┤
    │     Models & Database (SQLAlchemy)  │  ← Async sessions
    └─────────────────────────────────────┘

    The scorer never touches I/O and the reconciler only talks to the
    ToggleStore port it is given, so both run in unit tests without a database.
"""

__version__ = "1.0.0"
