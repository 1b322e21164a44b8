"""
API module for vaops.

Provides REST endpoints for:
- PIREP lifecycle (prefile, update, file, cancel, accept, reject)
- ACARS telemetry posts and reads
- Live map and system status
"""

from vaops.api.pireps import pireps_bp
from vaops.api.acars import acars_bp

__all__ = ['pireps_bp', 'acars_bp']
