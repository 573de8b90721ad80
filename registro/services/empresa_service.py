"""
Company resolution for the signed-in user.

Suppliers are linked to their company through a person column on the
suppliers list. Lookup failures fall back to "no company" so the form
still opens.
"""

import logging

from pydantic import BaseModel

from shared.errors import ErrorCategory, RemoteStoreError, get_error_logger
from shared.fields import VehFields
from shared.filters import Eq
from shared.list_store import ItemQuery, ListStore

logger = logging.getLogger(__name__)
error_logger = get_error_logger()


class Empresa(BaseModel):
    """Company a user belongs to."""

    id: int
    nombre: str


class EmpresaService:
    """Resolve the company of a user from the suppliers list."""

    def __init__(
        self,
        store: ListStore,
        list_title: str = "Proveedores",
        display_field: str = "Title",
        user_field: str = "Usuarios",
    ):
        self.store = store
        self.list_title = list_title
        self.display_field = display_field
        self.user_field = user_field

    async def resolve_for_user(self, user_id: int) -> Empresa | None:
        """
        Find the first supplier whose user column contains the user.

        Args:
            user_id: Site user id

        Returns:
            The company, or None when the user has none or the lookup failed
        """
        try:
            items = await self.store.get_items(
                self.list_title,
                ItemQuery(
                    select=[VehFields.ID, self.display_field],
                    filter=Eq(f"{self.user_field}/Id", int(user_id)),
                    expand=[self.user_field],
                    top=1,
                ),
            )
        except RemoteStoreError as e:
            error_logger.log_error(
                error=e,
                category=ErrorCategory.REMOTE_STORE_ERROR,
                operation="resolve_empresa",
                context={"user_id": user_id},
                exc_info=False,
            )
            return None

        if not items:
            logger.info(f"User {user_id} is not linked to any supplier")
            return None

        item = items[0]
        return Empresa(id=int(item[VehFields.ID]), nombre=str(item.get(self.display_field) or ""))
