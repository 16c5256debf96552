"""
Daily Sweep Module

Reconciles the NYC Open Data OATH snapshot with the local summons store:
- Client name/AKA matching
- Amount and date normalization
- Strict change detection with audit summaries
- Insert of new summonses and update on change

The service and router live in sweep.services and sweep.endpoints and
are imported directly by their callers.
"""

from sweep.models import (
    Client,
    CaseRecord,
    IncomingFields,
    SweepResult,
    ENRICHMENT_OUTPUT_FIELDS
)
from sweep.exceptions import (
    SweepError,
    SweepFatalError,
    RosterFetchError,
    SourceFetchError,
    SweepAlreadyRunningError,
    AliasCollisionError
)
from sweep.name_matcher import (
    AliasCollisionPolicy,
    normalize_name,
    build_client_name_map,
    match_client
)
from sweep.diff_engine import FieldChange, DiffResult, compute_diff

__all__ = [
    # Models
    'Client',
    'CaseRecord',
    'IncomingFields',
    'SweepResult',
    'ENRICHMENT_OUTPUT_FIELDS',
    # Exceptions
    'SweepError',
    'SweepFatalError',
    'RosterFetchError',
    'SourceFetchError',
    'SweepAlreadyRunningError',
    'AliasCollisionError',
    # Matching
    'AliasCollisionPolicy',
    'normalize_name',
    'build_client_name_map',
    'match_client',
    # Diff
    'FieldChange',
    'DiffResult',
    'compute_diff'
]
