"""
Eligibility checks for starting or changing a flight.

Each check is switched on by a PirepConfig flag and fails closed: a
missing pilot or aircraft counts as "not allowed".
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from vaops.config import PirepConfig, config
from vaops.exceptions import (
    AircraftNotAtDepartureAirport,
    AircraftPermissionDenied,
    UserNotAtDepartureAirport,
)
from vaops.models import Aircraft, Pilot

logger = logging.getLogger(__name__)


class EligibilityChecker:
    """Guards run before any PIREP is written."""

    def __init__(self, settings: Optional[PirepConfig] = None):
        self.settings = settings or config.pireps

    # -------------------------------------------------------------------------
    # Individual checks
    # -------------------------------------------------------------------------

    @staticmethod
    def user_at_departure_airport(user: Optional[Pilot], dpt_airport_id: str) -> bool:
        return user is not None and user.curr_airport_id == dpt_airport_id

    @staticmethod
    def aircraft_allowed(user: Optional[Pilot], aircraft: Optional[Aircraft]) -> bool:
        if user is None or aircraft is None:
            return False
        return (user.rank_level or 0) >= (aircraft.min_rank_level or 0)

    @staticmethod
    def aircraft_at_departure_airport(aircraft: Optional[Aircraft], dpt_airport_id: str) -> bool:
        return aircraft is not None and aircraft.airport_id == dpt_airport_id

    # -------------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------------

    def check_prefile(
        self,
        session: Session,
        user: Optional[Pilot],
        aircraft_id: int,
        dpt_airport_id: str,
    ) -> None:
        """
        Run the prefile guards in order.

        Raises UserNotAtDepartureAirport, AircraftPermissionDenied or
        AircraftNotAtDepartureAirport.
        """
        if self.settings.only_flights_from_current and not self.user_at_departure_airport(user, dpt_airport_id):
            logger.info(f'Prefile refused: pilot {user.id if user else "?"} not at {dpt_airport_id}')
            raise UserNotAtDepartureAirport()

        aircraft = session.get(Aircraft, aircraft_id)

        if self.settings.restrict_aircraft_to_rank and not self.aircraft_allowed(user, aircraft):
            logger.info(f'Prefile refused: pilot {user.id if user else "?"} may not fly aircraft {aircraft_id}')
            raise AircraftPermissionDenied()

        if self.settings.only_aircraft_at_dpt_airport and not self.aircraft_at_departure_airport(aircraft, dpt_airport_id):
            logger.info(f'Prefile refused: aircraft {aircraft_id} not at {dpt_airport_id}')
            raise AircraftNotAtDepartureAirport()

    def check_aircraft_change(self, session: Session, user: Optional[Pilot], aircraft_id: int) -> None:
        """Re-check rank permission when an update or file swaps the aircraft."""
        if not self.settings.restrict_aircraft_to_rank:
            return
        if not self.aircraft_allowed(user, session.get(Aircraft, aircraft_id)):
            raise AircraftPermissionDenied()
