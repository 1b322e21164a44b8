"""
PIREP services.

The lifecycle state machine and the collaborators it drives: eligibility
guards, duplicate detection, fares and custom fields, route synthesis,
finances and the GeoJSON projection.
"""

from vaops.services.pireps import DownstreamWarning, PirepService, TransitionResult
from vaops.services.finance import PirepFinanceService
from vaops.services.geo import GeoService, geo_service

__all__ = [
    'DownstreamWarning',
    'PirepService',
    'TransitionResult',
    'PirepFinanceService',
    'GeoService',
    'geo_service',
]
