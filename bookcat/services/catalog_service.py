"""Service for catalog CRUD across the database and local backends."""

import logging
from typing import Any, List, Optional

from ..exceptions import NotFoundError
from ..models import (
    Catalog, CATALOG_UPDATE_FIELDS, DEFAULT_CATALOG_NAME, DEFAULT_CATALOG_ICON,
    new_id, validate_catalog_color, validate_catalog_icon,
)
from .gateway import GatewayService

logger = logging.getLogger(__name__)


class CatalogService(GatewayService):
    """Create, list, update and delete catalogs."""

    async def get_catalogs(self, user_id: Optional[str]) -> List[Catalog]:
        """
        List the caller's catalogs, oldest first.

        A caller with no catalogs gets a freshly persisted default catalog,
        so the result is never empty.
        """
        backend = self.backend_for(user_id)
        catalogs = backend.list_catalogs(user_id)
        if catalogs:
            return catalogs

        logger.info(f"No catalogs found on {backend.name} backend, creating default catalog")
        default = await self.create_catalog(user_id, DEFAULT_CATALOG_NAME,
                                            icon=DEFAULT_CATALOG_ICON)
        return [default]

    async def get_catalog(self, user_id: Optional[str], catalog_id: str) -> Catalog:
        catalog = self.backend_for(user_id).get_catalog(user_id, catalog_id)
        if catalog is None:
            raise NotFoundError("catalog", catalog_id)
        return catalog

    async def create_catalog(self, user_id: Optional[str], name: str,
                             description: Optional[str] = None,
                             icon: Optional[str] = None,
                             color: Optional[str] = None) -> Catalog:
        """
        Create a catalog.

        Raises:
            ValueError: For an empty name or an unknown icon/color
        """
        name = (name or '').strip()
        if not name:
            raise ValueError("Catalog name is required")
        validate_catalog_icon(icon)
        validate_catalog_color(color)

        backend = self.backend_for(user_id)
        catalog = Catalog(
            id=new_id(),
            user_id=self.owner(backend, user_id),
            name=name,
            description=description,
            icon=icon,
            color=color,
        )
        created = backend.insert_catalog(catalog)
        logger.info(f"Created catalog '{created.name}' on {backend.name} backend")
        return created

    async def update_catalog(self, user_id: Optional[str], catalog_id: str,
                             **changes: Any) -> Catalog:
        """
        Update name, description, icon and/or color of a catalog.

        Raises:
            ValueError: For unknown fields or invalid values
            NotFoundError: If the catalog does not exist for this caller
        """
        unknown = set(changes) - set(CATALOG_UPDATE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update catalog fields: {', '.join(sorted(unknown))}")
        if 'name' in changes:
            changes['name'] = (changes['name'] or '').strip()
            if not changes['name']:
                raise ValueError("Catalog name is required")
        validate_catalog_icon(changes.get('icon'))
        validate_catalog_color(changes.get('color'))

        backend = self.backend_for(user_id)
        return backend.update_catalog(user_id, catalog_id, changes)

    async def delete_catalog(self, user_id: Optional[str], catalog_id: str) -> None:
        """
        Delete a catalog and its books.

        This does not protect the caller's last catalog; that guard belongs
        to the caller.
        """
        backend = self.backend_for(user_id)
        backend.delete_catalog(user_id, catalog_id)
        logger.info(f"Deleted catalog {catalog_id} from {backend.name} backend")

    def get_active_catalog_id(self) -> Optional[str]:
        """Catalog last selected in guest mode on this device."""
        return self.local.get_active_catalog_id()

    def set_active_catalog_id(self, catalog_id: str) -> None:
        self.local.set_active_catalog_id(catalog_id)
