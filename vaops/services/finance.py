"""
PIREP finances - books journal transactions for a filed flight.

Recalculation is a pure function of the PIREP's persisted attributes,
its fare selections, the aircraft and the pilot. Each run deletes the
PIREP's previous transactions and books a fresh set in one transaction,
so running it twice leaves the same journal as running it once.

Booked per disposition:
- PENDING / ACCEPTED: fare revenue, fare costs, fuel, ground handling,
  aircraft block-hour cost, pilot pay
- REJECTED: operating expenses only (fuel, ground handling, block hours)
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from vaops.config import FinanceConfig, config
from vaops.exceptions import FinanceError, PirepCancelled
from vaops.models import (
    Aircraft,
    Fare,
    JournalTransaction,
    Pilot,
    Pirep,
    PirepFare,
    PirepState,
)

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
MINUTES_PER_HOUR = Decimal(60)

GROUP_FARES = 'Fares'
GROUP_FARE_EXPENSES = 'Fare Expenses'
GROUP_FUEL = 'Fuel'
GROUP_GROUND_HANDLING = 'Ground Handling'
GROUP_AIRCRAFT = 'Aircraft'
GROUP_PILOT_PAY = 'Pilot Pay'


def _money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def summarize(transactions: List[JournalTransaction]) -> dict:
    """Totals for a transaction set."""
    credits = sum((Decimal(t.credit) for t in transactions), Decimal('0'))
    debits = sum((Decimal(t.debit) for t in transactions), Decimal('0'))
    return {
        'credit': str(_money(credits)),
        'debit': str(_money(debits)),
        'balance': str(_money(credits - debits)),
        'count': len(transactions),
    }


class PirepFinanceService:
    """Computes and books the transactions of a PIREP."""

    def __init__(self, settings: Optional[FinanceConfig] = None):
        self.settings = settings or config.finance

    def transactions_for_pirep(self, session: Session, pirep_id: str) -> List[JournalTransaction]:
        """Journal query: every transaction booked against a PIREP."""
        return list(session.scalars(
            select(JournalTransaction).where(
                JournalTransaction.pirep_id == pirep_id
            ).order_by(JournalTransaction.id.asc())
        ))

    def process_finances_for_pirep(self, session: Session, pirep: Pirep) -> List[JournalTransaction]:
        """
        (Re)compute the transactions of a PIREP and replace the booked set.

        Raises PirepCancelled for a cancelled PIREP and FinanceError when
        the PIREP is not filed or data needed for pricing is missing. On
        error nothing is deleted or booked.
        """
        if pirep.cancelled:
            raise PirepCancelled()
        if not pirep.filed:
            raise FinanceError(f'PIREP {pirep.id} has not been filed')
        if pirep.flight_time is not None and pirep.flight_time < 0:
            raise FinanceError(f'PIREP {pirep.id} has a negative flight time')

        aircraft = session.get(Aircraft, pirep.aircraft_id)
        if aircraft is None:
            raise FinanceError(f'Aircraft {pirep.aircraft_id} not found')

        pilot = session.get(Pilot, pirep.user_id)
        if pilot is None:
            raise FinanceError(f'Pilot {pirep.user_id} not found')

        rejected = pirep.state == PirepState.REJECTED
        block_hours = Decimal(pirep.flight_time or 0) / MINUTES_PER_HOUR

        lines: List[JournalTransaction] = []

        def book(group: str, memo: str, credit: Decimal = Decimal('0'), debit: Decimal = Decimal('0')) -> None:
            credit, debit = _money(credit), _money(debit)
            if credit == 0 and debit == 0:
                return
            lines.append(JournalTransaction(
                pirep_id=pirep.id,
                transaction_group=group,
                memo=memo,
                credit=credit,
                debit=debit,
            ))

        if not rejected:
            for pirep_fare, fare in self._fares(session, pirep.id):
                book(
                    GROUP_FARES,
                    f'Fares {fare.code}{pirep_fare.count}; price: {fare.price}',
                    credit=Decimal(fare.price) * pirep_fare.count,
                )
                book(
                    GROUP_FARE_EXPENSES,
                    f'Fare {fare.code}{pirep_fare.count}; cost: {fare.cost}',
                    debit=Decimal(fare.cost) * pirep_fare.count,
                )

        if pirep.fuel_used:
            fuel_used = Decimal(str(pirep.fuel_used))
            book(
                GROUP_FUEL,
                f'Fuel Costs: {fuel_used} lbs @ {self.settings.fuel_price_per_lb}/lbs',
                debit=fuel_used * self.settings.fuel_price_per_lb,
            )

        multiplier = Decimal(aircraft.ground_handling_multiplier or 0) / Decimal(100)
        book(
            GROUP_GROUND_HANDLING,
            f'Ground Handling at {pirep.arr_airport_id}',
            debit=self.settings.ground_handling_cost * multiplier,
        )

        book(
            GROUP_AIRCRAFT,
            f'Block hours: {_money(block_hours)} @ {aircraft.cost_block_hour}/hr',
            debit=Decimal(aircraft.cost_block_hour or 0) * block_hours,
        )

        if not rejected:
            book(
                GROUP_PILOT_PAY,
                f'Pilot Payment @ {pilot.pay_rate}/hr',
                debit=Decimal(pilot.pay_rate or 0) * block_hours,
            )

        # Supersede whatever an earlier run booked
        session.execute(delete(JournalTransaction).where(JournalTransaction.pirep_id == pirep.id))
        session.add_all(lines)
        session.flush()

        logger.info(f'Booked {len(lines)} transactions for PIREP {pirep.id} (state={pirep.state})')
        return lines

    @staticmethod
    def _fares(session: Session, pirep_id: str):
        rows = session.execute(
            select(PirepFare, Fare).outerjoin(Fare, Fare.id == PirepFare.fare_id).where(
                PirepFare.pirep_id == pirep_id
            ).order_by(PirepFare.fare_id)
        ).all()

        for pirep_fare, fare in rows:
            if fare is None:
                raise FinanceError(f'Fare {pirep_fare.fare_id} no longer exists')
        return rows
