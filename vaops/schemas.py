"""
Typed input boundary for PIREP and ACARS payloads.

Raw request bodies are validated into pydantic models holding only
known, typed fields. Unknown keys are rejected here rather than passed
through to the models, and every time field is normalised to naive UTC.
Validation errors leave this module as ValidationFailed.
"""

import math
import re
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Optional, Type, TypeVar

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from vaops.exceptions import ValidationFailed
from vaops.models.acars import AcarsType
from vaops.models.pirep import PirepStatus


# Statuses only File and Cancel may set
RESERVED_STATUSES = (PirepStatus.ARRIVED, PirepStatus.CANCELLED)

# Integer columns are 32-bit on every backend we run on
INT_MIN = -2 ** 31
INT_MAX = 2 ** 31 - 1

ModelT = TypeVar('ModelT', bound=BaseModel)


def _normalize_time(value: Any) -> datetime:
    if isinstance(value, bool):
        raise ValueError(f'invalid time {value!r}')

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ValueError(f'invalid time {value!r}')
        try:
            dt = datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise ValueError(f'time out of range {value!r}') from None
    elif isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError:
            raise ValueError(f'invalid time {value!r}') from None
    else:
        raise ValueError(f'invalid time {value!r}')

    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_time(value: Any, field_name: str = 'time') -> datetime:
    """
    Normalize a client supplied time to a naive UTC datetime.

    Accepts:
    - datetime instances (naive values are taken as UTC)
    - Unix timestamps (int/float seconds)
    - ISO-8601 strings, 'Z' suffix allowed, 'T' or space separated
    """
    try:
        return _normalize_time(value)
    except ValueError as e:
        raise ValidationFailed(f'{field_name}: {e}') from None


def _upper(value: str) -> str:
    return value.upper()


def _editable_status(status: PirepStatus) -> PirepStatus:
    if status in RESERVED_STATUSES:
        raise ValueError(f'{status.name} is set by filing or cancelling only')
    return status


Int32 = Annotated[int, Field(ge=INT_MIN, le=INT_MAX)]
Count = Annotated[int, Field(ge=0, le=INT_MAX)]
AirportId = Annotated[str, Field(min_length=1, max_length=5), AfterValidator(_upper)]
Timestamp = Annotated[datetime, BeforeValidator(_normalize_time)]
Latitude = Annotated[float, Field(ge=-90, le=90)]
Longitude = Annotated[float, Field(ge=-180, le=180)]
Text = Annotated[str, Field(max_length=65535)]


def _describe(error: ValidationError, label: Optional[str] = None) -> str:
    """One line per pydantic error: 'location: message'."""
    parts = []
    for detail in error.errors():
        location = '.'.join(str(part) for part in detail['loc'])
        if label:
            location = f'{label}.{location}' if location else label
        message = detail['msg']
        parts.append(f'{location}: {message}' if location else message)
    return '; '.join(parts)


def validate(model: Type[ModelT], data: Any, label: Optional[str] = None) -> ModelT:
    """Validate `data` into `model`, raising ValidationFailed on bad input."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ValidationFailed(_describe(e, label)) from None


# -------------------------------------------------------------------------
# PIREP payloads
# -------------------------------------------------------------------------

class FareSelection(BaseModel):
    """Seat count sold for one fare class, sent as {"id": ..., "count": ...}."""
    model_config = ConfigDict(populate_by_name=True)

    fare_id: Int32 = Field(alias='id')
    count: Count


# Nested payload keys handled separately from the model attributes
NESTED_KEYS = ('fields', 'fares')

# May be sent but never set to null
NOT_NULL_FIELDS = ('aircraft_id', 'dpt_airport_id', 'arr_airport_id', 'flight_type', 'status', 'created_at')


class PirepChanges(BaseModel):
    """
    A partial set of PIREP attributes, used by update and file.

    Only the keys present in the payload end up in `attrs`.
    """
    model_config = ConfigDict(
        extra='forbid',
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,
        allow_inf_nan=False,
    )

    aircraft_id: Optional[Int32] = None
    flight_number: Optional[str] = Field(None, max_length=10)
    route_code: Optional[str] = Field(None, max_length=5)
    route_leg: Optional[str] = Field(None, max_length=5)
    flight_type: Optional[str] = Field(None, max_length=1)
    dpt_airport_id: Optional[AirportId] = None
    arr_airport_id: Optional[AirportId] = None
    alt_airport_id: Optional[AirportId] = None
    level: Optional[Int32] = None
    distance: Optional[float] = None
    planned_distance: Optional[float] = None
    flight_time: Optional[Int32] = None
    planned_flight_time: Optional[Int32] = None
    zfw: Optional[float] = None
    block_fuel: Optional[float] = None
    fuel_used: Optional[float] = None
    landing_rate: Optional[float] = None
    score: Optional[Int32] = None
    route: Optional[Text] = None
    notes: Optional[Text] = None
    source_name: Optional[str] = Field(None, max_length=50)
    status: Optional[Annotated[PirepStatus, AfterValidator(_editable_status)]] = None
    created_at: Optional[Timestamp] = None

    fields: Dict[str, Optional[str]] = Field(default_factory=dict)
    fares: List[FareSelection] = Field(default_factory=list)

    @field_validator('fields', mode='before')
    @classmethod
    def no_fields(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator('fares', mode='before')
    @classmethod
    def no_fares(cls, value: Any) -> Any:
        return [] if value is None else value

    @model_validator(mode='after')
    def check_not_null(self) -> 'PirepChanges':
        for name in NOT_NULL_FIELDS:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f'{name}: cannot be cleared')
        return self

    @classmethod
    def from_payload(cls, payload: Optional[dict]) -> 'PirepChanges':
        return validate(cls, payload or {})

    @property
    def attrs(self) -> Dict[str, Any]:
        """Model attributes present in the payload, nested keys excluded."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name not in NESTED_KEYS
        }


class PirepDraft(PirepChanges):
    """A not-yet-persisted PIREP, as sent to prefile."""

    aircraft_id: Int32
    dpt_airport_id: AirportId
    arr_airport_id: AirportId

    @classmethod
    def from_payload(cls, payload: Optional[dict]) -> 'PirepDraft':
        return validate(cls, payload or {})

    def model_attrs(self) -> Dict[str, Any]:
        """All attributes to write onto a Pirep row."""
        values = self.model_dump(exclude=set(NESTED_KEYS), exclude_none=True)
        if isinstance(values.get('status'), PirepStatus):
            values['status'] = values['status'].value
        return values


# -------------------------------------------------------------------------
# ACARS telemetry entries
# -------------------------------------------------------------------------

class _Entry(BaseModel):
    model_config = ConfigDict(
        extra='forbid',
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,
        allow_inf_nan=False,
        use_enum_values=True,
    )

    lat: Optional[Latitude] = None
    lon: Optional[Longitude] = None

    def to_row(self) -> Dict[str, Any]:
        """Acars column values for the keys the client sent."""
        return self.model_dump(exclude_unset=True)


class PositionEntry(_Entry):
    lat: Latitude
    lon: Longitude
    heading: Optional[float] = None
    altitude: Optional[float] = None
    vs: Optional[float] = None
    gs: Optional[float] = None
    distance: Optional[float] = None
    fuel: Optional[float] = None
    fuel_flow: Optional[float] = None
    transponder: Optional[Int32] = None
    autopilot: Optional[bool] = None
    status: Optional[PirepStatus] = None
    log: Optional[Text] = None
    sim_time: Optional[Timestamp] = None
    created_at: Optional[Timestamp] = None


class LogEntry(_Entry):
    log: Annotated[str, Field(min_length=1, max_length=65535)]
    sim_time: Optional[Timestamp] = None
    created_at: Optional[Timestamp] = None


class EventEntry(_Entry):
    event: Annotated[str, Field(min_length=1, max_length=65535)]
    sim_time: Optional[Timestamp] = None
    created_at: Optional[Timestamp] = None

    def to_row(self) -> Dict[str, Any]:
        row = super().to_row()
        row['log'] = row.pop('event')
        return row


class RouteEntry(_Entry):
    name: Annotated[str, Field(min_length=1, max_length=20)]
    order: Optional[Int32] = None  # Accepted for compatibility; position in the list wins
    nav_type: Optional[Int32] = None

    def to_row(self) -> Dict[str, Any]:
        row = super().to_row()
        row.pop('order', None)
        return row


ENTRY_MODELS: Dict[AcarsType, Type[_Entry]] = {
    AcarsType.FLIGHT_PATH: PositionEntry,
    AcarsType.LOG: LogEntry,
    AcarsType.EVENT: EventEntry,
    AcarsType.ROUTE: RouteEntry,
}


def _parse_entry(acars_type: AcarsType, index: int, entry: Any) -> Dict[str, Any]:
    label = f'{acars_type.name.lower()}[{index}]'

    if not isinstance(entry, dict):
        raise ValidationFailed(f'{label}: expected an object')

    # `id` and `type` are echoed back by some clients; both are ours to set
    payload = {k: v for k, v in entry.items() if k not in ('id', 'type', 'pirep_id')}
    return validate(ENTRY_MODELS[acars_type], payload, label).to_row()


def parse_entries(acars_type: AcarsType, entries: Any) -> List[Dict[str, Any]]:
    """
    Validate a batch of telemetry entries of one type.

    Returns rows keyed by Acars column names, without pirep_id/type/order
    which the telemetry store stamps on.
    """
    if entries is None:
        entries = []
    if not isinstance(entries, list):
        raise ValidationFailed(f'{acars_type.name.lower()}: expected a list')
    return [_parse_entry(acars_type, i, entry) for i, entry in enumerate(entries)]


_SLUG_RE = re.compile(r'[^a-z0-9]+')


def slugify(name: str) -> str:
    """Custom field slug: lowercase, runs of other characters become '_'."""
    return _SLUG_RE.sub('_', name.strip().lower()).strip('_')
