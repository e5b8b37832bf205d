"""
Backend selection shared by the persistence services.

A call made with a user id goes to the database backend; a call without one
(guest mode) goes to the device-local backend. When no database backend is
configured every call is served locally.
"""

import logging
from typing import Optional

from ..storage.base import StorageBackend
from ..storage.local import LocalBackend

logger = logging.getLogger(__name__)


class GatewayService:
    """Base for services that route each call to one storage backend."""

    def __init__(self, local: LocalBackend, database: Optional[StorageBackend] = None):
        """
        Args:
            local: Guest-mode backend
            database: Backend for signed-in users, if configured
        """
        self.local = local
        self.database = database

    def backend_for(self, user_id: Optional[str]) -> StorageBackend:
        if user_id and self.database is not None:
            return self.database
        return self.local

    @staticmethod
    def owner(backend: StorageBackend, user_id: Optional[str]) -> Optional[str]:
        """User id to stamp on new records for ``backend``."""
        return None if isinstance(backend, LocalBackend) else user_id
