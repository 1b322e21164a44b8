"""
ACARS ingestion for vaops.

Handles telemetry batches posted by flight clients: positions, logs,
events and route points, appended to the telemetry store.
"""

from vaops.ingestion.telemetry_store import LiveFlight, TelemetryStore, telemetry_store
from vaops.ingestion.pipeline import AcarsPipeline, IngestResult

__all__ = ['LiveFlight', 'TelemetryStore', 'telemetry_store', 'AcarsPipeline', 'IngestResult']
