"""
Certificate reconciliation service.

Keeps one canonical record per (plate, certificate kind) in a list store
that has neither upsert nor versioned attachments:

- Latest wins: the store may hold duplicates left by concurrent creates.
  Every read orders by Id descending and keeps the first record seen per
  kind; writes target the highest-Id match.
- Attachments are replaced in two phases, delete all existing then add the
  new ones. The phases are not transactional: a failure in between leaves
  the record without attachments, and re-running the replacement repairs it.
- Multi-step operations are never rolled back; each one is safe to re-run.
- Plates are trimmed at every entry point, then matched exactly (case
  sensitive).
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Any

from registro.models import (
    Attachment,
    AttachmentResult,
    CertificadoFields,
    CertificadoRow,
    CertificateKind,
)
from shared.errors import NotFoundError, ValidationError
from shared.fields import CertFields
from shared.filters import And, Eq, Or
from shared.list_store import ItemQuery, ListStore

logger = logging.getLogger(__name__)

DEFAULT_DELETE_BATCH_SIZE = 10


def format_store_date(value: date) -> str:
    """Date-only value as UTC midnight, the way date columns are written."""
    return f"{value.isoformat()}T00:00:00Z"


def parse_store_date(value: Any) -> date | None:
    """
    Parse a date column value read from the store.

    Args:
        value: ISO 8601 string, date/datetime, or None/empty

    Returns:
        The date part, or None when absent or unparseable
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except ValueError:
        logger.warning(f"Unparseable date value from store: {value!r}")
        return None


def _kind_key(item: dict[str, Any]) -> str:
    return str(item.get(CertFields.CERTIFICADO) or "").upper()


def latest_by_kind(items: list[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """
    Reduce certificate records to the latest one per kind.

    Args:
        items: Records already ordered by Id descending

    Returns:
        Mapping of upper-cased kind to its first-seen record; later
        (lower-Id) duplicates are shadowed, not merged
    """
    latest: dict[str, dict[str, Any]] = {}
    for item in items:
        latest.setdefault(_kind_key(item), item)
    return latest


def _kind_value(kind: CertificateKind | str) -> str:
    return kind.value if isinstance(kind, CertificateKind) else str(kind)


def _require_plate(plate: str) -> str:
    """Trimmed plate; blank plates are rejected."""
    plate = (plate or "").strip()
    if not plate:
        raise ValidationError("Placa es obligatoria.")
    return plate


def _optional_text(value: Any) -> str | None:
    return None if value is None else str(value)


class CertificadoService:
    """
    Reconciles certificate records and their attachments for a plate.

    The store handle is passed in explicitly; the service holds no other
    state.
    """

    def __init__(
        self,
        store: ListStore,
        list_title: str = "Certificados",
        *,
        delete_batch_size: int = DEFAULT_DELETE_BATCH_SIZE,
    ):
        if delete_batch_size < 1:
            raise ValueError("delete_batch_size must be >= 1")
        self.store = store
        self.list_title = list_title
        self.delete_batch_size = delete_batch_size

    @staticmethod
    def _build_payload(
        plate: str,
        kind: CertificateKind | str,
        fields: CertificadoFields,
    ) -> dict[str, Any]:
        """Columns to write; fields left as None are not sent."""
        payload: dict[str, Any] = {
            CertFields.TITLE: plate,
            CertFields.CERTIFICADO: _kind_value(kind),
        }
        if fields.emision is not None:
            payload[CertFields.EMISION] = format_store_date(fields.emision)
        if fields.caducidad is not None:
            payload[CertFields.CADUCIDAD] = format_store_date(fields.caducidad)
        if fields.anio is not None:
            payload[CertFields.ANIO] = fields.anio
        if fields.resolucion is not None:
            payload[CertFields.RESOLUCION] = format_store_date(fields.resolucion)
        if fields.expediente is not None:
            payload[CertFields.EXPEDIENTE] = fields.expediente
        return payload

    async def _find_latest_id(self, predicate) -> int | None:
        items = await self.store.get_items(
            self.list_title,
            ItemQuery(
                select=[CertFields.ID],
                filter=predicate,
                order_by=CertFields.ID,
                descending=True,
                top=1,
            ),
        )
        if items and items[0].get(CertFields.ID):
            return int(items[0][CertFields.ID])
        return None

    async def _replace_attachments(self, item_id: int, attachments: list[Attachment]) -> None:
        """
        Delete every attachment on the item, then add the new ones.

        If an add fails after the deletes, the item is left with fewer (or
        no) attachments; calling this again with the same files repairs it.
        """
        existing = await self.store.get_attachments(self.list_title, item_id)
        for current in existing:
            await self.store.delete_attachment(self.list_title, item_id, current["FileName"])

        for attachment in attachments:
            await self.store.add_attachment(
                self.list_title, item_id, attachment.filename, attachment.content
            )

        logger.info(
            f"Replaced {len(existing)} attachment(s) with {len(attachments)} on item {item_id}",
            extra={"list_title": self.list_title, "item_id": item_id},
        )

    async def upsert(
        self,
        plate: str,
        kind: CertificateKind | str,
        fields: CertificadoFields | None = None,
        attachments: list[Attachment] | None = None,
    ) -> int:
        """
        Find-or-create the canonical record for (plate, kind) and apply changes.

        Args:
            plate: Vehicle plate, matched exactly
            kind: Certificate kind, matched exactly
            fields: Columns to write; None fields are left untouched
            attachments: When non-empty, replace all existing attachments

        Returns:
            Id of the updated or created record

        Raises:
            ValidationError: Empty plate
            RemoteStoreError: Any store call failed
        """
        plate = _require_plate(plate)
        fields = fields or CertificadoFields()
        kind_value = _kind_value(kind)
        payload = self._build_payload(plate, kind, fields)

        existing_id = await self._find_latest_id(
            And(Eq(CertFields.TITLE, plate), Eq(CertFields.CERTIFICADO, kind_value))
        )

        if existing_id is not None:
            item_id = existing_id
            await self.store.update_item(self.list_title, item_id, payload)
            logger.info(
                f"Updated certificate {kind_value} for {plate} (item {item_id})",
                extra={"plate": plate, "certificate_kind": kind_value, "item_id": item_id},
            )
        else:
            created = await self.store.add_item(self.list_title, payload)
            item_id = int(created[CertFields.ID])
            logger.info(
                f"Created certificate {kind_value} for {plate} (item {item_id})",
                extra={"plate": plate, "certificate_kind": kind_value, "item_id": item_id},
            )

        if attachments:
            await self._replace_attachments(item_id, attachments)

        return item_id

    async def replace_attachment(
        self,
        plate: str,
        kind: CertificateKind | str,
        attachment: Attachment,
    ) -> AttachmentResult:
        """
        Replace the attachment of an existing certificate record.

        Never creates a record. The kind matches either as given or
        upper-cased.

        Raises:
            ValidationError: Empty plate
            NotFoundError: No record for (plate, kind); nothing is mutated
            RemoteStoreError: Any store call failed
        """
        plate = _require_plate(plate)
        kind_value = _kind_value(kind)

        item_id = await self._find_latest_id(
            And(
                Eq(CertFields.TITLE, plate),
                Or(
                    Eq(CertFields.CERTIFICADO, kind_value),
                    Eq(CertFields.CERTIFICADO, kind_value.upper()),
                ),
            )
        )
        if item_id is None:
            raise NotFoundError("No existe un registro para ese certificado")

        return await self.replace_attachment_by_id(item_id, attachment)

    async def replace_attachment_by_id(
        self,
        item_id: int,
        attachment: Attachment,
    ) -> AttachmentResult:
        """
        Replace all attachments of a known record with a single file.

        Returns:
            The record id and the file name now stored on it
        """
        await self._replace_attachments(item_id, [attachment])

        stored = await self.store.get_attachments(self.list_title, item_id)
        filename = stored[0]["FileName"] if stored else attachment.filename
        return AttachmentResult(id=item_id, filename=filename)

    async def _items_for_plate(self, plate: str, select: list[str], expand: list[str] | None = None):
        return await self.store.get_items(
            self.list_title,
            ItemQuery(
                select=select,
                filter=Eq(CertFields.TITLE, (plate or "").strip()),
                order_by=CertFields.ID,
                descending=True,
                expand=expand or [],
            ),
        )

    async def get_status(self, plate: str) -> dict[str, Any]:
        """
        Project the latest certificate of each kind into form fields.

        Attachments are not fetched here: file slots come back as None.

        Args:
            plate: Vehicle plate

        Returns:
            Partial DocumentState values, ready for model_copy(update=...)
        """
        items = await self._items_for_plate(plate, CertFields.status_select())
        latest = latest_by_kind(items)

        def get(kind: CertificateKind) -> dict[str, Any]:
            return latest.get(kind.value, {})

        rev_tec = get(CertificateKind.REVISION_TECNICA)
        sanipes = get(CertificateKind.SANIPES)

        return {
            "prop_file": None,
            "res_bonificacion_file": None,
            "cert_bonificacion_date": parse_store_date(
                get(CertificateKind.CERTIFICADO_BONIFICACION).get(CertFields.EMISION)
            ),
            "cert_bonificacion_file": None,
            "rev_tec_date": parse_store_date(rev_tec.get(CertFields.EMISION)),
            "rev_tec_text": str(rev_tec.get(CertFields.ANIO) or ""),
            "rev_tec_file": None,
            "sanipes_date": parse_store_date(sanipes.get(CertFields.RESOLUCION)),
            "sanipes_text": sanipes.get(CertFields.EXPEDIENTE) or "",
            "sanipes_file": None,
            "termoking_date": parse_store_date(
                get(CertificateKind.TERMOKING).get(CertFields.EMISION)
            ),
            "termoking_file": None,
            "limpieza_date": parse_store_date(
                get(CertificateKind.LIMPIEZA_DESINFECCION).get(CertFields.EMISION)
            ),
            "limpieza_file": None,
        }

    async def list_for_display(self, plate: str) -> list[CertificadoRow]:
        """
        Latest certificate per kind with its first attachment name.

        Attachments come expanded in the same query, no per-item calls.

        Returns:
            Rows sorted by kind
        """
        items = await self._items_for_plate(
            plate,
            [*CertFields.status_select(), CertFields.ATTACHMENT_FILENAME],
            expand=[CertFields.ATTACHMENT_FILES],
        )
        latest = latest_by_kind(items)

        rows: list[CertificadoRow] = []
        for kind in sorted(latest):
            item = latest[kind]
            files = item.get(CertFields.ATTACHMENT_FILES) or []
            rows.append(
                CertificadoRow(
                    id=int(item[CertFields.ID]),
                    tipo=kind,
                    emision=item.get(CertFields.EMISION),
                    resolucion=item.get(CertFields.RESOLUCION),
                    anio=_optional_text(item.get(CertFields.ANIO)),
                    expediente=item.get(CertFields.EXPEDIENTE),
                    archivo=files[0].get("FileName") if files else None,
                )
            )
        return rows

    async def delete_all_for_plate(self, plate: str) -> int:
        """
        Delete every certificate record of a plate.

        Deletes run in batches: calls inside a batch run concurrently,
        batches run one after another. Every delete of a batch settles
        before the next batch starts or a failure is raised; a failing batch
        stops the run and re-running it deletes whatever is left.

        Args:
            plate: Vehicle plate; blank is a no-op

        Returns:
            Number of records deleted
        """
        plate = (plate or "").strip()
        if not plate:
            return 0

        items = await self.store.get_items(
            self.list_title,
            ItemQuery(select=[CertFields.ID], filter=Eq(CertFields.TITLE, plate)),
        )
        if not items:
            logger.debug(f"No certificates to delete for {plate}", extra={"plate": plate})
            return 0

        ids = [int(item[CertFields.ID]) for item in items]
        for start in range(0, len(ids), self.delete_batch_size):
            batch = ids[start:start + self.delete_batch_size]
            # Let every delete of the batch settle before reporting a failure
            results = await asyncio.gather(
                *(self.store.delete_item(self.list_title, item_id) for item_id in batch),
                return_exceptions=True,
            )
            failures = [r for r in results if isinstance(r, BaseException)]
            if failures:
                logger.warning(
                    f"{len(failures)} of {len(batch)} certificate delete(s) failed for {plate}",
                    extra={"plate": plate, "list_title": self.list_title},
                )
                raise failures[0]

        logger.info(
            f"Deleted {len(ids)} certificate(s) for {plate}",
            extra={"plate": plate, "list_title": self.list_title},
        )
        return len(ids)
