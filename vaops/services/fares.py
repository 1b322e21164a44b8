"""
Fare and custom field persistence for PIREPs.

Both replace-or-upsert in the caller's session, so a prefile or update
writes its fares in the same transaction as the PIREP itself.
"""

import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from vaops.exceptions import ValidationFailed
from vaops.models import Fare, PirepFare, PirepFieldValue, PirepFieldSource
from vaops.schemas import FareSelection, slugify

logger = logging.getLogger(__name__)


class FareService:

    def save_for_pirep(self, session: Session, pirep_id: str, selections: Sequence[FareSelection]) -> List[PirepFare]:
        """
        Replace the fare selections of a PIREP.

        Unknown fare ids are rejected before anything is deleted.
        """
        if not selections:
            return []

        fare_ids = {s.fare_id for s in selections}
        known = set(session.scalars(select(Fare.id).where(Fare.id.in_(fare_ids))))
        missing = sorted(fare_ids - known)
        if missing:
            raise ValidationFailed(f'Unknown fare ids: {", ".join(str(i) for i in missing)}')

        # Last entry wins when a fare is listed twice
        counts: Dict[int, int] = {}
        for selection in selections:
            counts[selection.fare_id] = selection.count

        session.execute(delete(PirepFare).where(PirepFare.pirep_id == pirep_id))
        rows = [PirepFare(pirep_id=pirep_id, fare_id=fare_id, count=count) for fare_id, count in counts.items()]
        session.add_all(rows)
        session.flush()

        logger.debug(f'Saved {len(rows)} fares for PIREP {pirep_id}')
        return rows

    def for_pirep(self, session: Session, pirep_id: str) -> List[PirepFare]:
        return list(session.scalars(
            select(PirepFare).where(PirepFare.pirep_id == pirep_id).order_by(PirepFare.fare_id)
        ))


class FieldService:

    def update_custom_fields(
        self,
        session: Session,
        pirep_id: str,
        fields: Dict[str, Optional[str]],
        source: PirepFieldSource = PirepFieldSource.ACARS,
    ) -> int:
        """Upsert custom field values by slug. Returns the count written."""
        if not fields:
            return 0

        existing = {
            f.slug: f for f in session.scalars(
                select(PirepFieldValue).where(PirepFieldValue.pirep_id == pirep_id)
            )
        }

        for name, value in fields.items():
            slug = slugify(name)
            if not slug:
                raise ValidationFailed(f'Invalid field name {name!r}')

            row = existing.get(slug)
            if row is None:
                row = PirepFieldValue(pirep_id=pirep_id, name=name, slug=slug)
                session.add(row)
                existing[slug] = row
            row.value = value
            row.source = source.value

        session.flush()
        return len(fields)

    def for_pirep(self, session: Session, pirep_id: str) -> List[PirepFieldValue]:
        return list(session.scalars(
            select(PirepFieldValue).where(PirepFieldValue.pirep_id == pirep_id).order_by(PirepFieldValue.id)
        ))
