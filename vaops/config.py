"""
Configuration management for vaops.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here so the PIREP state machine and
the ACARS pipeline receive an explicit config object instead of looking
up settings ad hoc.
"""

import os
from dataclasses import dataclass
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool = False) -> bool:
    """Parse a boolean-ish environment variable ('1', 'true', 'yes', 'on')."""
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class DatabaseConfig:
    """Database configuration."""
    url: str = os.getenv('DATABASE_URL', 'sqlite:///vaops.db')

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith('sqlite')


@dataclass(frozen=True)
class PirepConfig:
    """
    Rules for the PIREP lifecycle and ACARS ingestion.

    The three eligibility flags mirror the phpVMS settings
    pilots.only_flights_from_current, pireps.restrict_aircraft_to_rank
    and pireps.only_aircraft_at_dpt_airport.
    """
    restrict_aircraft_to_rank: bool = _env_flag('PIREPS_RESTRICT_AIRCRAFT_TO_RANK', False)
    only_flights_from_current: bool = _env_flag('PILOTS_ONLY_FLIGHTS_FROM_CURRENT', False)
    only_aircraft_at_dpt_airport: bool = _env_flag('PIREPS_ONLY_AIRCRAFT_AT_DPT_AIRPORT', False)

    # Hours a PIREP stays on the live map after its last update (0 = forever)
    live_tracking_hours: int = int(os.getenv('ACARS_LIVE_TIME', '0'))

    # Lookback window for idempotent prefile
    duplicate_window_minutes: int = int(os.getenv('PIREPS_DUPLICATE_CHECK_TIME', '1440'))

    # Copy the new submission's fields onto a reused duplicate
    refresh_duplicate_fields: bool = _env_flag('PIREPS_REFRESH_DUPLICATE_FIELDS', False)

    default_flight_type: str = 'J'  # Scheduled passenger


@dataclass(frozen=True)
class FinanceConfig:
    """Rates used when booking PIREP transactions."""
    fuel_price_per_lb: Decimal = Decimal(os.getenv('FINANCE_FUEL_PRICE_PER_LB', '0.40'))
    ground_handling_cost: Decimal = Decimal(os.getenv('FINANCE_GROUND_HANDLING_COST', '150.00'))


@dataclass(frozen=True)
class CacheConfig:
    """In-memory live map cache settings."""
    ttl_seconds: int = int(os.getenv('CACHE_TTL_SECONDS', '5'))


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    database: DatabaseConfig
    pireps: PirepConfig
    finance: FinanceConfig
    cache: CacheConfig

    # Flask settings
    secret_key: str
    debug: bool


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        database=DatabaseConfig(),
        pireps=PirepConfig(),
        finance=FinanceConfig(),
        cache=CacheConfig(),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
    )


# Singleton instance
config = load_config()
