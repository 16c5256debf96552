from .connection import get_db, get_engine, get_session_factory, init_db, Base

from .summons_models import ClientDB, SummonsDB, EnrichmentStatus

__all__ = [
    'get_db', 'get_engine', 'get_session_factory', 'init_db', 'Base',
    # Sweep models
    'ClientDB', 'SummonsDB', 'EnrichmentStatus',
]
