"""MonetDB tool adapters for monetbench."""

from .database import DatabaseError, DatabaseState, MonetDBAdmin
from .farm import FarmError, FarmInfo, FarmState, MonetDBDaemon
from .mclient import MClient, MClientError, ensure_credentials_file

__all__ = [
    # Farm
    "MonetDBDaemon",
    "FarmInfo",
    "FarmState",
    "FarmError",
    # Database
    "MonetDBAdmin",
    "DatabaseState",
    "DatabaseError",
    # SQL client
    "MClient",
    "MClientError",
    "ensure_credentials_file",
]
