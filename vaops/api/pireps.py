"""
PIREP and ACARS API endpoints.

Provides endpoints for:
- GET /api/pireps - Live flights with their last position
- GET /api/pireps/<id> - Single PIREP
- POST /api/pireps/prefile - Create (or reuse) an in-progress PIREP
- POST /api/pireps/<id>/update - Change PIREP attributes
- POST /api/pireps/<id>/file - Submit the PIREP
- PUT|DELETE /api/pireps/<id>/cancel - Cancel the PIREP
- POST /api/pireps/<id>/accept|reject - Dispose of a pending PIREP
- GET|POST /api/pireps/<id>/fields - Custom field values
- GET /api/pireps/<id>/finances - Journal transactions
- POST /api/pireps/<id>/finances/recalculate - Re-run finances
- GET|POST|DELETE /api/pireps/<id>/route - Planned route points
- GET|POST /api/pireps/<id>/acars/position - Flight path
- GET|POST /api/pireps/<id>/acars/logs - Log lines
- POST /api/pireps/<id>/acars/events - Events
- GET /api/pireps/<id>/acars/geojson - Flown track as GeoJSON

Errors from the core are serialised by the application's VaopsError
handler, so the views here only parse input and shape output.
"""

import logging
from typing import Any

from flask import Blueprint, current_app, jsonify, request

from vaops.exceptions import ValidationFailed
from vaops.schemas import PirepChanges, PirepDraft
from vaops.services.finance import summarize

logger = logging.getLogger(__name__)

pireps_bp = Blueprint('pireps', __name__, url_prefix='/api/pireps')


def _service():
    return current_app.config['PIREP_SERVICE']


def _pipeline():
    return current_app.config['ACARS_PIPELINE']


def _payload() -> dict:
    """JSON body as a dict; an empty body is an empty dict."""
    if not request.get_data():
        return {}
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationFailed('Request body must be a JSON object')
    return body


def _user_id() -> int:
    value = request.headers.get('X-User-Id', '')
    try:
        return int(value)
    except ValueError:
        raise ValidationFailed('X-User-Id header must be a pilot id')


def _result(result, created: bool = False):
    status = 201 if created and result.transitioned else 200
    return jsonify(result.to_dict()), status


def _records(records) -> Any:
    return jsonify({'data': [r.to_dict() for r in records]})


# -----------------------------------------------------------------------------
# PIREPs
# -----------------------------------------------------------------------------

@pireps_bp.route('', methods=['GET'])
def list_live():
    """In-progress PIREPs that have reported a position."""
    flights = current_app.config['LIVE_CACHE'].get_live_flights()
    return jsonify({'data': flights, 'count': len(flights)})


@pireps_bp.route('/<pirep_id>', methods=['GET'])
def get_pirep(pirep_id: str):
    return jsonify({'data': _service().get(pirep_id).to_dict()})


@pireps_bp.route('/prefile', methods=['POST'])
def prefile():
    """
    Create an in-progress PIREP for the calling pilot.

    201 when a PIREP was created, 200 when an equivalent recent one was
    returned instead.
    """
    user_id = _user_id()
    draft = PirepDraft.from_payload(_payload())
    return _result(_service().prefile(user_id, draft), created=True)


@pireps_bp.route('/<pirep_id>', methods=['PUT'])
@pireps_bp.route('/<pirep_id>/update', methods=['POST'])
def update(pirep_id: str):
    changes = PirepChanges.from_payload(_payload())
    return _result(_service().update(pirep_id, changes))


@pireps_bp.route('/<pirep_id>/file', methods=['POST'])
def file(pirep_id: str):
    changes = PirepChanges.from_payload(_payload())
    return _result(_service().file(pirep_id, changes))


@pireps_bp.route('/<pirep_id>/cancel', methods=['PUT', 'DELETE'])
def cancel(pirep_id: str):
    return _result(_service().cancel(pirep_id))


@pireps_bp.route('/<pirep_id>/accept', methods=['POST'])
def accept(pirep_id: str):
    return _result(_service().accept(pirep_id))


@pireps_bp.route('/<pirep_id>/reject', methods=['POST'])
def reject(pirep_id: str):
    return _result(_service().reject(pirep_id))


# -----------------------------------------------------------------------------
# Custom fields and finances
# -----------------------------------------------------------------------------

@pireps_bp.route('/<pirep_id>/fields', methods=['GET'])
def fields_get(pirep_id: str):
    return _records(_service().custom_fields(pirep_id))


@pireps_bp.route('/<pirep_id>/fields', methods=['POST'])
def fields_post(pirep_id: str):
    """Body: {"fields": {"Name": "value", ...}}"""
    changes = PirepChanges.from_payload({'fields': _payload().get('fields')})
    return _records(_service().update_custom_fields(pirep_id, changes.fields))


@pireps_bp.route('/<pirep_id>/finances', methods=['GET'])
def finances_get(pirep_id: str):
    transactions = _service().transactions(pirep_id)
    return jsonify({
        'data': [t.to_dict() for t in transactions],
        'summary': summarize(transactions),
    })


@pireps_bp.route('/<pirep_id>/finances/recalculate', methods=['POST'])
def finances_recalculate(pirep_id: str):
    transactions = _service().recalculate_finance(pirep_id)
    return jsonify({
        'data': [t.to_dict() for t in transactions],
        'summary': summarize(transactions),
    })


# -----------------------------------------------------------------------------
# Route and ACARS
# -----------------------------------------------------------------------------

@pireps_bp.route('/<pirep_id>/route', methods=['GET'])
def route_get(pirep_id: str):
    return _records(_pipeline().get_route(pirep_id))


@pireps_bp.route('/<pirep_id>/route', methods=['POST'])
def route_post(pirep_id: str):
    """Body: {"route": [{"name": ..., "lat": ..., "lon": ...}, ...]}"""
    result = _pipeline().post_route(pirep_id, _payload().get('route'))
    return jsonify(result.to_dict())


@pireps_bp.route('/<pirep_id>/route', methods=['DELETE'])
def route_delete(pirep_id: str):
    return jsonify(_pipeline().delete_route(pirep_id).to_dict())


@pireps_bp.route('/<pirep_id>/acars/position', methods=['GET'])
def acars_get(pirep_id: str):
    return _records(_pipeline().get_flight_path(pirep_id))


@pireps_bp.route('/<pirep_id>/acars/position', methods=['POST'])
def acars_store(pirep_id: str):
    """Body: {"positions": [{"lat": ..., "lon": ..., ...}, ...]}"""
    result = _pipeline().post_positions(pirep_id, _payload().get('positions'))
    return jsonify(result.to_dict())


@pireps_bp.route('/<pirep_id>/acars/logs', methods=['GET'])
def acars_logs_get(pirep_id: str):
    return _records(_pipeline().get_logs(pirep_id))


@pireps_bp.route('/<pirep_id>/acars/logs', methods=['POST'])
def acars_logs(pirep_id: str):
    """Body: {"logs": [{"log": ...}, ...]}"""
    result = _pipeline().post_logs(pirep_id, _payload().get('logs'))
    return jsonify(result.to_dict())


@pireps_bp.route('/<pirep_id>/acars/events', methods=['POST'])
def acars_events(pirep_id: str):
    """Body: {"events": [{"event": ...}, ...]}"""
    result = _pipeline().post_events(pirep_id, _payload().get('events'))
    return jsonify(result.to_dict())


@pireps_bp.route('/<pirep_id>/acars/geojson', methods=['GET'])
def acars_geojson(pirep_id: str):
    return jsonify(_pipeline().get_flight_geojson(pirep_id))
