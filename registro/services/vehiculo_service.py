"""
Vehicle records: find-or-create by plate, load, delete and list.
"""

import logging
from typing import Any

from registro.models import Vehiculo, VehiculoRow
from shared.errors import ValidationError
from shared.fields import VehFields
from shared.filters import Eq
from shared.list_store import ItemQuery, ListStore

logger = logging.getLogger(__name__)

# Form-only attributes never written to the vehicles list
READ_ONLY_ATTRIBUTES = {"Empresa"}


def _lookup_title(item: dict[str, Any], field: str) -> str | None:
    value = item.get(field)
    if isinstance(value, dict):
        return value.get("Title")
    return None


def vehicle_to_payload(vehicle: Vehiculo) -> dict[str, Any]:
    """Map a vehicle to list columns, skipping unset (None) values."""
    payload: dict[str, Any] = {}
    for attribute, column in VehFields.BY_ATTRIBUTE.items():
        if attribute in READ_ONLY_ATTRIBUTES:
            continue
        value = getattr(vehicle, attribute)
        if value is not None:
            payload[column] = value
    return payload


def item_to_vehicle(item: dict[str, Any]) -> Vehiculo:
    """Map a vehicles list item back to the form model."""
    data: dict[str, Any] = {}
    for attribute, column in VehFields.BY_ATTRIBUTE.items():
        value = item.get(column)
        if value is None:
            continue
        # Text columns may come back as numbers
        if attribute not in {"Rampa", "Bonificacion", "Activo", "EmpresaId"}:
            value = str(value)
        data[attribute] = value
    data["Empresa"] = _lookup_title(item, VehFields.EMPRESA)
    return Vehiculo(**data)


class VehiculoService:
    """Vehicle list operations keyed by plate."""

    def __init__(self, store: ListStore, list_title: str = "Vehiculos"):
        self.store = store
        self.list_title = list_title

    async def _find_latest(self, plate: str, select: list[str]) -> dict[str, Any] | None:
        items = await self.store.get_items(
            self.list_title,
            ItemQuery(
                select=select,
                filter=Eq(VehFields.TITLE, plate),
                order_by=VehFields.ID,
                descending=True,
                top=1,
                expand=[VehFields.EMPRESA] if VehFields.EMPRESA_TITLE in select else [],
            ),
        )
        return items[0] if items else None

    async def upsert(self, vehicle: Vehiculo) -> int:
        """
        Update the vehicle with this plate, or create it.

        Args:
            vehicle: Form values; None attributes are not written

        Returns:
            Id of the vehicle record

        Raises:
            ValidationError: Empty plate
            RemoteStoreError: Any store call failed
        """
        plate = (vehicle.Placa or "").strip()
        if not plate:
            raise ValidationError("Placa es obligatoria.")

        payload = vehicle_to_payload(vehicle.model_copy(update={"Placa": plate}))
        existing = await self._find_latest(plate, [VehFields.ID])

        if existing:
            item_id = int(existing[VehFields.ID])
            await self.store.update_item(self.list_title, item_id, payload)
            logger.info(f"Updated vehicle {plate} (item {item_id})", extra={"plate": plate, "item_id": item_id})
            return item_id

        created = await self.store.add_item(self.list_title, payload)
        item_id = int(created[VehFields.ID])
        logger.info(f"Created vehicle {plate} (item {item_id})", extra={"plate": plate, "item_id": item_id})
        return item_id

    async def get_by_plate(self, plate: str) -> Vehiculo | None:
        """Load the latest vehicle record for a plate, or None."""
        plate = (plate or "").strip()
        item = await self._find_latest(plate, VehFields.select())
        if item is None:
            logger.debug(f"Vehicle {plate} not found", extra={"plate": plate})
            return None
        return item_to_vehicle(item)

    async def delete_by_plate(self, plate: str) -> bool:
        """
        Delete the vehicle record of a plate.

        An absent vehicle is not an error, so decommission can be re-run.

        Returns:
            True if a record was deleted, False if none existed
        """
        plate = (plate or "").strip()
        if not plate:
            raise ValidationError("Placa es obligatoria.")

        existing = await self._find_latest(plate, [VehFields.ID])
        if not existing:
            logger.warning(f"Vehicle {plate} already absent, nothing to delete", extra={"plate": plate})
            return False

        item_id = int(existing[VehFields.ID])
        await self.store.delete_item(self.list_title, item_id)
        logger.info(f"Deleted vehicle {plate} (item {item_id})", extra={"plate": plate, "item_id": item_id})
        return True

    async def list_by_empresa(self, empresa: str | None = None) -> list[VehiculoRow]:
        """
        List vehicles for the picker grid, ordered by plate.

        Args:
            empresa: Company display name to filter on; None lists all

        Returns:
            One row per vehicle record
        """
        items = await self.store.get_items(
            self.list_title,
            ItemQuery(
                select=VehFields.row_select(),
                filter=Eq(VehFields.EMPRESA_TITLE, empresa) if empresa else None,
                order_by=VehFields.TITLE,
                expand=[VehFields.EMPRESA],
            ),
        )
        return [
            VehiculoRow(
                id=int(item[VehFields.ID]),
                Placa=str(item.get(VehFields.TITLE) or ""),
                Marca=item.get(VehFields.MARCA),
                Modelo=item.get(VehFields.MODELO),
                TipoUnidad=item.get(VehFields.TIPO_UNIDAD),
                Empresa=_lookup_title(item, VehFields.EMPRESA),
                Activo=item.get(VehFields.ACTIVO) is not False,
            )
            for item in items
        ]
