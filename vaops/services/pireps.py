"""
PIREP service - the lifecycle state machine.

    IN_PROGRESS --file--> PENDING --accept--> ACCEPTED
                                  --reject--> REJECTED
    any state --cancel--> CANCELLED

Every mutating operation runs under the PIREP's lock and re-reads the
row (SELECT ... FOR UPDATE where the database supports it), so a file
and a concurrent ACARS position post cannot interleave into a mismatched
state/status pair.

Work that follows a committed transition (custom fields, fares, route
synthesis, finances) is best effort: a failure is logged and returned as
a warning on the TransitionResult, and the transition stands.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session, sessionmaker

from vaops.config import PirepConfig, config
from vaops.exceptions import InvalidTransition, NotFound
from vaops.ingestion.telemetry_store import TelemetryStore, telemetry_store
from vaops.locks import PREFILE, ROUTE, PirepLocks, pirep_locks
from vaops.models import (
    AcarsType,
    check_cancelled,
    load_pirep,
    JournalTransaction,
    Pilot,
    Pirep,
    PirepFieldValue,
    PirepSource,
    PirepState,
    PirepStatus,
    SessionLocal,
    get_session,
    utcnow,
)
from vaops.schemas import PirepChanges, PirepDraft
from vaops.services.duplicates import DuplicateDetector
from vaops.services.eligibility import EligibilityChecker
from vaops.services.fares import FareService, FieldService
from vaops.services.finance import PirepFinanceService
from vaops.services.routes import RouteService

logger = logging.getLogger(__name__)

STEP_CUSTOM_FIELDS = 'custom_fields'
STEP_FARES = 'fares'
STEP_ROUTE = 'route'
STEP_FINANCE = 'finance'


@dataclass
class DownstreamWarning:
    """A post-transition step that failed without undoing the transition."""
    step: str
    error: Exception

    def to_dict(self) -> dict:
        return {
            'step': self.step,
            'error': getattr(self.error, 'error', type(self.error).__name__),
            'message': str(self.error),
        }


@dataclass
class TransitionResult:
    """
    Outcome of a lifecycle operation.

    `transitioned` is False when the call changed nothing about the
    lifecycle: a prefile that reused a duplicate, a repeated file or
    cancel.
    """
    pirep: Pirep
    transitioned: bool = True
    warnings: List[DownstreamWarning] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'data': self.pirep.to_dict(),
            'transitioned': self.transitioned,
            'warnings': [w.to_dict() for w in self.warnings],
        }


class PirepService:
    """Owns PIREP state and status."""

    def __init__(
        self,
        settings: Optional[PirepConfig] = None,
        session_factory: Optional[sessionmaker] = None,
        locks: Optional[PirepLocks] = None,
        store: Optional[TelemetryStore] = None,
        eligibility: Optional[EligibilityChecker] = None,
        duplicates: Optional[DuplicateDetector] = None,
        fares: Optional[FareService] = None,
        fields: Optional[FieldService] = None,
        routes: Optional[RouteService] = None,
        finance: Optional[PirepFinanceService] = None,
    ):
        self.settings = settings or config.pireps
        self.session_factory = session_factory or SessionLocal
        self.locks = locks or pirep_locks
        self.store = store or telemetry_store
        self.eligibility = eligibility or EligibilityChecker(self.settings)
        self.duplicates = duplicates or DuplicateDetector(self.settings.duplicate_window_minutes)
        self.fares = fares or FareService()
        self.fields = fields or FieldService()
        self.routes = routes or RouteService(self.store)
        self.finance = finance or PirepFinanceService()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, pirep_id: str) -> Pirep:
        with get_session(self.session_factory) as session:
            return load_pirep(session, pirep_id)

    def transactions(self, pirep_id: str) -> List[JournalTransaction]:
        with get_session(self.session_factory) as session:
            load_pirep(session, pirep_id)
            return self.finance.transactions_for_pirep(session, pirep_id)

    def custom_fields(self, pirep_id: str) -> List[PirepFieldValue]:
        with get_session(self.session_factory) as session:
            load_pirep(session, pirep_id)
            return self.fields.for_pirep(session, pirep_id)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def prefile(self, user_id: int, draft: PirepDraft) -> TransitionResult:
        """
        Create a PIREP in IN_PROGRESS, or hand back an equivalent one.

        Guards run before anything is written. A retry of the same
        prefile returns the PIREP created by the first attempt, unless
        that one has since been cancelled.
        """
        logger.info(f'PIREP prefile, user {user_id}: {draft.dpt_airport_id}-{draft.arr_airport_id} aircraft {draft.aircraft_id}')

        # Serialize prefiles per pilot so two retries can't both create
        with self.locks.hold(user_id, PREFILE):
            with get_session(self.session_factory) as session:
                user = session.get(Pilot, user_id)
                if user is None:
                    raise NotFound(f'Pilot {user_id} not found')

                self.eligibility.check_prefile(session, user, draft.aircraft_id, draft.dpt_airport_id)

                duplicate = self.duplicates.find_duplicate(session, user_id, draft)
                if duplicate is None:
                    values = draft.model_attrs()
                    values.setdefault('status', PirepStatus.INITIATED.value)
                    if not values.get('flight_type'):
                        values['flight_type'] = self.settings.default_flight_type

                    pirep = Pirep(
                        user_id=user_id,
                        source=PirepSource.ACARS.value,
                        state=PirepState.IN_PROGRESS.value,
                        **values,
                    )
                    session.add(pirep)
                    session.flush()

                    self._save_extras(session, pirep, draft.fields, draft.fares)
                    logger.info(f'PIREP {pirep.id} prefiled')
                    return TransitionResult(pirep)

            logger.info(f'Prefile matched existing PIREP {duplicate.id}')
            with self.locks.hold(duplicate.id):
                with get_session(self.session_factory) as session:
                    pirep = load_pirep(session, duplicate.id, lock=True)
                    # May have been cancelled since the lookup
                    check_cancelled(pirep)

                    if self.settings.refresh_duplicate_fields:
                        self._apply(pirep, {
                            k: v for k, v in draft.model_attrs().items()
                            if k not in ('created_at', 'status')
                        })
                    self._save_extras(session, pirep, draft.fields, draft.fares)
                    return TransitionResult(pirep, transitioned=False)

    def update(self, pirep_id: str, changes: PirepChanges) -> TransitionResult:
        """Change attributes of a PIREP that is not cancelled."""
        logger.info(f'PIREP update {pirep_id}: {sorted(changes.attrs)}')

        with self.locks.hold(pirep_id):
            with get_session(self.session_factory) as session:
                pirep = load_pirep(session, pirep_id, lock=True)
                check_cancelled(pirep)
                self._check_aircraft_change(session, pirep, changes)

                if 'status' in changes.attrs and pirep.filed:
                    raise InvalidTransition('Status cannot change after the PIREP is filed')

                self._apply(pirep, changes.attrs)
                self._save_extras(session, pirep, changes.fields, changes.fares)
                return TransitionResult(pirep, transitioned='status' in changes.attrs)

    def file(self, pirep_id: str, changes: Optional[PirepChanges] = None) -> TransitionResult:
        """
        Submit a PIREP: IN_PROGRESS -> PENDING, status ARRIVED.

        submitted_at is stamped on the first file only. Filing a PIREP
        that is already PENDING or beyond changes nothing and does not
        re-run finances.
        """
        changes = changes or PirepChanges()
        logger.info(f'PIREP file {pirep_id}')

        with self.locks.hold(pirep_id):
            with get_session(self.session_factory) as session:
                pirep = load_pirep(session, pirep_id, lock=True)
                check_cancelled(pirep)
                self._check_aircraft_change(session, pirep, changes)

                # Finance was booked by the first file; recalculate_finance reruns it
                if pirep.filed:
                    logger.info(f'PIREP {pirep_id} already filed at {pirep.submitted_at}')
                    return TransitionResult(pirep, transitioned=False)

                self._apply(pirep, {k: v for k, v in changes.attrs.items() if k != 'status'})
                pirep.state = PirepState.PENDING.value
                pirep.status = PirepStatus.ARRIVED.value
                if pirep.submitted_at is None:
                    pirep.submitted_at = utcnow()

            warnings: List[DownstreamWarning] = []

            if changes.fields:
                self._downstream(STEP_CUSTOM_FIELDS, pirep, warnings,
                                 lambda s: self.fields.update_custom_fields(s, pirep.id, changes.fields))
            if changes.fares:
                self._downstream(STEP_FARES, pirep, warnings,
                                 lambda s: self.fares.save_for_pirep(s, pirep.id, changes.fares))

            with self.locks.hold(pirep_id, ROUTE):
                self._downstream(STEP_ROUTE, pirep, warnings, self._ensure_route(pirep))

            self._downstream(STEP_FINANCE, pirep, warnings,
                             lambda s: self.finance.process_finances_for_pirep(s, load_pirep(s, pirep.id)))

            logger.info(f'PIREP {pirep_id} filed with {len(warnings)} warnings')
            return TransitionResult(pirep, warnings=warnings)

    def cancel(self, pirep_id: str) -> TransitionResult:
        """Cancel from any state. Cancelling twice is harmless."""
        logger.info(f'PIREP cancel {pirep_id}')

        with self.locks.hold(pirep_id):
            with get_session(self.session_factory) as session:
                pirep = load_pirep(session, pirep_id, lock=True)
                was_cancelled = pirep.cancelled and pirep.status == PirepStatus.CANCELLED
                pirep.state = PirepState.CANCELLED.value
                pirep.status = PirepStatus.CANCELLED.value
                return TransitionResult(pirep, transitioned=not was_cancelled)

    def accept(self, pirep_id: str) -> TransitionResult:
        return self._dispose(pirep_id, PirepState.ACCEPTED)

    def reject(self, pirep_id: str) -> TransitionResult:
        return self._dispose(pirep_id, PirepState.REJECTED)

    def recalculate_finance(self, pirep_id: str) -> List[JournalTransaction]:
        """Manual, idempotent re-run of the finance computation. Errors propagate."""
        with self.locks.hold(pirep_id):
            with get_session(self.session_factory) as session:
                pirep = load_pirep(session, pirep_id)
                return self.finance.process_finances_for_pirep(session, pirep)

    def update_custom_fields(self, pirep_id: str, fields: Dict[str, Optional[str]]) -> List[PirepFieldValue]:
        with self.locks.hold(pirep_id):
            with get_session(self.session_factory) as session:
                pirep = load_pirep(session, pirep_id)
                check_cancelled(pirep)
                self.fields.update_custom_fields(session, pirep_id, fields)
                return self.fields.for_pirep(session, pirep_id)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _dispose(self, pirep_id: str, target: PirepState) -> TransitionResult:
        logger.info(f'PIREP {pirep_id} -> {target.name}')

        with self.locks.hold(pirep_id):
            with get_session(self.session_factory) as session:
                pirep = load_pirep(session, pirep_id, lock=True)
                check_cancelled(pirep)
                if pirep.state == target:
                    return TransitionResult(pirep, transitioned=False)
                if pirep.state != PirepState.PENDING:
                    raise InvalidTransition(
                        f'PIREP {pirep_id} is {PirepState(pirep.state).name}, only PENDING can be {target.name}'
                    )
                pirep.state = target.value

            warnings: List[DownstreamWarning] = []
            self._downstream(STEP_FINANCE, pirep, warnings,
                             lambda s: self.finance.process_finances_for_pirep(s, load_pirep(s, pirep.id)))
            return TransitionResult(pirep, warnings=warnings)

    def _check_aircraft_change(self, session: Session, pirep: Pirep, changes: PirepChanges) -> None:
        if changes.aircraft_id is None:
            return
        self.eligibility.check_aircraft_change(session, session.get(Pilot, pirep.user_id), changes.aircraft_id)

    def _ensure_route(self, pirep: Pirep) -> Callable[[Session], int]:
        def ensure(session: Session) -> int:
            if self.store.count(session, pirep.id, AcarsType.ROUTE) > 0:
                return 0
            return self.routes.save_route(session, pirep)
        return ensure

    def _save_extras(self, session: Session, pirep: Pirep, fields, fares) -> None:
        if fields:
            self.fields.update_custom_fields(session, pirep.id, fields)
        if fares:
            self.fares.save_for_pirep(session, pirep.id, fares)

    @staticmethod
    def _apply(pirep: Pirep, attrs: Dict[str, Any]) -> None:
        for name, value in attrs.items():
            if isinstance(value, PirepStatus):
                value = value.value
            setattr(pirep, name, value)

    def _downstream(
        self,
        step: str,
        pirep: Pirep,
        warnings: List[DownstreamWarning],
        work: Callable[[Session], Any],
    ) -> None:
        """Run a post-transition step in its own transaction, keeping failures as warnings."""
        try:
            with get_session(self.session_factory) as session:
                work(session)
        except Exception as e:
            logger.exception(f'PIREP {pirep.id}: {step} failed after transition')
            warnings.append(DownstreamWarning(step=step, error=e))
