"""
vaops Backend Package.

Virtual airline PIREP lifecycle and ACARS telemetry, built with Flask,
SQLAlchemy, and NumPy.

Modules:
    api/         REST endpoints for PIREPs, ACARS posts and the live map
    models/      SQLAlchemy ORM models (Pirep, Acars, Aircraft, Pilot, fares, journal)
    ingestion/   ACARS pipeline and the telemetry store
    services/    PIREP state machine, eligibility, finances, GeoJSON
    cache.py     Thread-safe TTL cache for the live map
    config.py    Centralized configuration from environment variables
    locks.py     Per-PIREP lock registry
"""

__version__ = '1.0.0'
