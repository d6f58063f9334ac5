"""
isup - rank HTTP(S) endpoints by latency and reliability.

A :class:`Service` probes a set of endpoints on an interval, scores each one
with a pluggable :class:`~isup.strategy.Strategy`, keeps the scores in a
pluggable :class:`~isup.store.Store` and reports the best-scoring URL.
"""

from isup.client import ProbeClient, ProbeResult
from isup.constants import SERVER_NAME, SERVER_VERSION
from isup.errors import (
    ConfigurationError,
    InvalidURLError,
    IsupError,
    ProbeFailure,
    StoreError,
)
from isup.probe import Probe
from isup.score import Score
from isup.service import Service, UpdateReport

__version__ = SERVER_VERSION
__app_name__ = SERVER_NAME

__all__ = [
    "ConfigurationError",
    "InvalidURLError",
    "IsupError",
    "Probe",
    "ProbeClient",
    "ProbeFailure",
    "ProbeResult",
    "SERVER_NAME",
    "SERVER_VERSION",
    "Score",
    "Service",
    "StoreError",
    "UpdateReport",
    "__version__",
    "__app_name__",
]
