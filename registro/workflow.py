"""
Registry form workflow: create, update and decommission vehicles.

RegistroWorkflow holds the state of one registry form (selected action,
vehicle values, documents, staged files) and runs the save sequence
against the vehicle and certificate services. Derived state (eligibility
flags, document validity) is recomputed explicitly after every mutation.

None of the multi-step sequences are transactional. A failed save leaves
whatever already reached the store and is fixed by saving again.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Callable

from registro.models import (
    Attachment,
    CertificadoFields,
    CertificateKind,
    DocumentState,
    StagedDocument,
    Vehiculo,
    VehiculoRow,
)
from registro.rules.document_validity import DocumentValidityWatcher, today_local
from registro.rules.eligibility import (
    ChoiceOptions,
    compute_flags,
    default_temperatura,
    missing_required_fields,
)
from registro.services.certificado_service import CertificadoService
from registro.services.vehiculo_service import VehiculoService
from registro.state import RoleFlags, RunOnceGuard
from shared.config import get_settings
from shared.errors import (
    ErrorCategory,
    NotFoundError,
    RemoteStoreError,
    ValidationError,
    categorize,
    extract_error_message,
    get_error_logger,
)

logger = logging.getLogger(__name__)
error_logger = get_error_logger()

MSG_PLACA_OBLIGATORIA = "Placa es obligatoria."
MSG_REVISAR_DOCUMENTACION = (
    "Revisa la documentación antes de guardar. Hay errores que deben corregirse."
)
MSG_PLACA_NO_ENCONTRADA = "No se encontró la placa en la lista seleccionada."
MSG_BAJA_OK = "Vehículo dado de baja."
MSG_GUARDADO_OK = "Listo."
MSG_ERROR_GUARDAR = "Error al guardar: "


class Accion(str, Enum):
    """Form action selected by the user."""

    CREAR = "crear"
    ACTUALIZAR = "actualizar"
    BAJA = "baja"


@dataclass(frozen=True)
class SaveResult:
    """Outcome of a save, ready to show to the user."""

    ok: bool
    message: str
    errors: list[str] = field(default_factory=list)
    log_ref: str | None = None


def _blank_to_none(text: str | None) -> str | None:
    text = (text or "").strip()
    return text or None


class RegistroWorkflow:
    """
    State and save sequence of the vehicle registry form.

    Args:
        vehiculos: Vehicle service
        certificados: Certificate service
        roles: Group memberships of the current user
        empresa: Company name resolved for the current user, if any
        empresa_id: Company lookup id resolved for the current user, if any
        required_fields: Vehicle attributes the vehicles list marks as required
        temperatura_options: (key, text) options of the temperature column
        today: Returns the local date-only "today"; defaults to Lima time
    """

    def __init__(
        self,
        vehiculos: VehiculoService,
        certificados: CertificadoService,
        *,
        roles: RoleFlags | None = None,
        empresa: str | None = None,
        empresa_id: int | None = None,
        required_fields: set[str] | None = None,
        temperatura_options: ChoiceOptions | None = None,
        today: Callable[[], date] | None = None,
    ):
        self.vehiculos = vehiculos
        self.certificados = certificados
        self.roles = roles or RoleFlags()
        self.required_fields = set(required_fields or ())
        self.temperatura_options = list(temperatura_options or [])

        self.accion = Accion.CREAR
        self.vehiculo = Vehiculo(Empresa=empresa, EmpresaId=empresa_id)
        self.doc = DocumentState()
        self.staged: list[StagedDocument] = []
        self.rows: list[VehiculoRow] = []

        self.doc_valido = True
        self.errores_docs: list[str] = []
        self.busy = False
        self.is_saving = False

        self._load_guard = RunOnceGuard()
        self._validity = DocumentValidityWatcher(
            self._on_validity_change,
            today or (lambda: today_local(get_settings().VALIDITY_REFERENCE_TIMEZONE)),
        )
        self.flags = compute_flags(self.vehiculo)
        self._refresh_derived()

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def _on_validity_change(self, ok: bool, errors: list[str]) -> None:
        self.doc_valido = ok
        self.errores_docs = errors

    def _refresh_derived(self) -> None:
        """Fill the temperature default, then recompute flags and validity."""
        if not (self.vehiculo.Temperatura or "").strip():
            self.vehiculo = self.vehiculo.model_copy(
                update={"Temperatura": default_temperatura(self.temperatura_options)}
            )
        self.flags = compute_flags(self.vehiculo)
        self._validity.refresh(self.doc, self.flags)

    # ------------------------------------------------------------------
    # Form mutations
    # ------------------------------------------------------------------

    def set_action(self, accion: Accion | str) -> None:
        """Switch action; choosing "crear" starts from an empty form."""
        self.accion = Accion(accion)
        if self.accion is Accion.CREAR:
            self.reset_form()

    def update_vehicle(self, **changes: Any) -> None:
        """Apply vehicle attribute changes and recompute eligibility."""
        self.vehiculo = Vehiculo.model_validate({**self.vehiculo.model_dump(), **changes})
        self._refresh_derived()

    def update_documents(self, **changes: Any) -> None:
        """Apply document date/text/file changes and re-validate."""
        self.doc = DocumentState.model_validate({**self.doc.model_dump(), **changes})
        self._refresh_derived()

    def stage_document(self, kind: CertificateKind | str, attachment: Attachment) -> None:
        """Stage a replacement file; a newer file for the same kind wins."""
        kind = CertificateKind(kind)
        self.staged = [s for s in self.staged if s.kind is not kind]
        self.staged.append(StagedDocument(kind=kind, attachment=attachment))

    def reset_form(self) -> None:
        """Clear vehicle, documents and staging; keep the user's company."""
        self.vehiculo = Vehiculo(Empresa=self.vehiculo.Empresa, EmpresaId=self.vehiculo.EmpresaId)
        self.doc = DocumentState()
        self.staged = []
        self._validity.reset()
        self._refresh_derived()

    # ------------------------------------------------------------------
    # Loads
    # ------------------------------------------------------------------

    async def load_rows(self) -> list[VehiculoRow]:
        """
        Load the vehicle picker rows for update/decommission.

        Repeated calls with the same action and company filter are skipped.
        A failed load keeps the previous rows and is retried on the next call.
        """
        if self.accion not in (Accion.ACTUALIZAR, Accion.BAJA):
            return self.rows

        empresa = self.vehiculo.Empresa if self.roles.filters_by_empresa else None
        key = f"{self.accion.value}|{empresa or ''}"
        if not self._load_guard.should_run(key):
            return self.rows

        try:
            self.rows = await self.vehiculos.list_by_empresa(empresa)
        except RemoteStoreError as e:
            self._load_guard.reset()
            error_logger.log_error(
                error=e,
                category=ErrorCategory.REMOTE_STORE_ERROR,
                operation="load_rows",
                context={"key": key},
                exc_info=False,
            )
        return self.rows

    async def select_row(self, plate: str) -> None:
        """
        Load a vehicle and its certificate status into the form.

        Both reads run concurrently.

        Raises:
            NotFoundError: The plate has no vehicle record
            RemoteStoreError: Any store call failed
        """
        vehiculo, status = await asyncio.gather(
            self.vehiculos.get_by_plate(plate),
            self.certificados.get_status(plate),
        )
        if vehiculo is None:
            raise NotFoundError(MSG_PLACA_NO_ENCONTRADA)

        self.vehiculo = vehiculo.model_copy(
            update={"Empresa": self.vehiculo.Empresa, "EmpresaId": self.vehiculo.EmpresaId}
        )
        self.doc = self.doc.model_copy(update=status)
        self._refresh_derived()

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def _check_can_save(self) -> str:
        """Return the trimmed plate or raise ValidationError."""
        plate = (self.vehiculo.Placa or "").strip()
        if not plate:
            raise ValidationError(MSG_PLACA_OBLIGATORIA)

        if self.accion is Accion.BAJA:
            return plate

        missing = missing_required_fields(self.vehiculo, self.required_fields)
        if missing:
            raise ValidationError([f"Campo obligatorio: {name}" for name in missing])

        if self.accion is Accion.CREAR and not self.doc_valido:
            detail = "\n\n- " + "\n- ".join(self.errores_docs) if self.errores_docs else ""
            raise ValidationError(self.errores_docs, summary=MSG_REVISAR_DOCUMENTACION + detail)

        return plate

    async def save(self) -> SaveResult:
        """
        Run the save for the current action.

        - baja: delete certificates, then the vehicle
        - crear: upsert the vehicle, then commit every filled document section
        - actualizar: upsert the vehicle, then replace staged attachments

        busy/is_saving are always cleared, whichever step failed.

        Returns:
            SaveResult with the message to show
        """
        try:
            plate = self._check_can_save()
        except ValidationError as e:
            log_ref = error_logger.log_error(
                error=e,
                category=ErrorCategory.VALIDATION_ERROR,
                plate=self.vehiculo.Placa,
                operation=f"save:{self.accion.value}",
                exc_info=False,
            )
            return SaveResult(ok=False, message=e.message, errors=e.messages, log_ref=log_ref)

        self.busy = True
        self.is_saving = True
        try:
            if self.accion is Accion.BAJA:
                await self.decommission(plate)
                self.reset_form()
                return SaveResult(ok=True, message=MSG_BAJA_OK)

            await self.vehiculos.upsert(self.vehiculo.model_copy(update={"Placa": plate}))
            if self.accion is Accion.CREAR:
                await self._commit_documents(plate)
                self.reset_form()
            else:
                await self._commit_staged(plate)
                self.staged = []
            return SaveResult(ok=True, message=MSG_GUARDADO_OK)

        except Exception as e:
            log_ref = error_logger.log_error(
                error=e,
                category=categorize(e),
                plate=plate,
                operation=f"save:{self.accion.value}",
            )
            return SaveResult(
                ok=False,
                message=MSG_ERROR_GUARDAR + extract_error_message(e),
                log_ref=log_ref,
            )

        finally:
            self.is_saving = False
            self.busy = False

    async def _commit_documents(self, plate: str) -> None:
        """Upsert one certificate per document section the user filled in."""
        doc = self.doc

        def files(attachment: Attachment | None) -> list[Attachment]:
            return [attachment] if attachment else []

        if doc.prop_file:
            await self.certificados.upsert(
                plate, CertificateKind.TARJETA_PROPIEDAD, attachments=[doc.prop_file]
            )

        if doc.res_bonificacion_file:
            await self.certificados.upsert(
                plate, CertificateKind.RESOLUCION_BONIFICACION, attachments=[doc.res_bonificacion_file]
            )

        if doc.cert_bonificacion_date or doc.cert_bonificacion_file:
            await self.certificados.upsert(
                plate,
                CertificateKind.CERTIFICADO_BONIFICACION,
                CertificadoFields(emision=doc.cert_bonificacion_date),
                files(doc.cert_bonificacion_file),
            )

        if doc.rev_tec_date or doc.rev_tec_text or doc.rev_tec_file:
            await self.certificados.upsert(
                plate,
                CertificateKind.REVISION_TECNICA,
                CertificadoFields(emision=doc.rev_tec_date, anio=(doc.rev_tec_text or "").strip()),
                files(doc.rev_tec_file),
            )

        if doc.sanipes_date or doc.sanipes_text or doc.sanipes_file:
            await self.certificados.upsert(
                plate,
                CertificateKind.SANIPES,
                CertificadoFields(
                    resolucion=doc.sanipes_date,
                    expediente=_blank_to_none(doc.sanipes_text),
                ),
                files(doc.sanipes_file),
            )

        if doc.termoking_date or doc.termoking_file:
            await self.certificados.upsert(
                plate,
                CertificateKind.TERMOKING,
                CertificadoFields(emision=doc.termoking_date),
                files(doc.termoking_file),
            )

        if doc.limpieza_date or doc.limpieza_file:
            await self.certificados.upsert(
                plate,
                CertificateKind.LIMPIEZA_DESINFECCION,
                CertificadoFields(emision=doc.limpieza_date),
                files(doc.limpieza_file),
            )

    async def _commit_staged(self, plate: str) -> None:
        """Replace the attachment of each staged document, in staging order."""
        for staged in self.staged:
            await self.certificados.replace_attachment(plate, staged.kind, staged.attachment)

    async def decommission(self, plate: str) -> None:
        """
        Remove a vehicle and all its certificates.

        Certificates go first so none outlives its vehicle. Safe to re-run:
        both steps are no-ops when their records are already gone.
        """
        plate = (plate or "").strip()
        if not plate:
            raise ValidationError(MSG_PLACA_OBLIGATORIA)

        deleted = await self.certificados.delete_all_for_plate(plate)
        await self.vehiculos.delete_by_plate(plate)
        logger.info(
            f"Decommissioned {plate} ({deleted} certificate(s) removed)",
            extra={"plate": plate},
        )
