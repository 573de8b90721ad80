"""
Domain models for the vehicle registry.

Pydantic models for vehicles, certificate field sets, the document form
state and the rows shown in listings.
"""

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CertificateKind(str, Enum):
    """Closed set of compliance document categories."""

    TARJETA_PROPIEDAD = "TARJETA_PROPIEDAD"
    RESOLUCION_BONIFICACION = "RESOLUCION_BONIFICACION"
    CERTIFICADO_BONIFICACION = "CERTIFICADO_BONIFICACION"
    REVISION_TECNICA = "REVISION_TECNICA"
    SANIPES = "SANIPES"
    TERMOKING = "TERMOKING"
    LIMPIEZA_DESINFECCION = "LIMPIEZA_DESINFECCION"


class Attachment(BaseModel):
    """A file to upload as a list item attachment."""

    model_config = ConfigDict(frozen=True)

    filename: str = Field(min_length=1)
    content: bytes


class Vehiculo(BaseModel):
    """Vehicle form data, keyed by plate."""

    Placa: str = ""
    Empresa: str | None = None
    EmpresaId: int | None = None
    Activo: bool = True
    SOAT: str | None = None
    Codigo: str | None = None
    Marca: str | None = None
    Modelo: str | None = None
    Capacidad: str | None = None
    Otros: str | None = None
    Rampa: bool = False
    LargoRampa: str | None = None
    AnchoRampa: str | None = None
    Bonificacion: bool = False
    NroResolucion: str | None = None
    MedidasInternas: str | None = None
    MedidasExternas: str | None = None
    AlturaPiso: str | None = None
    PesoCargaUtil: str | None = None
    PesoNeto: str | None = None
    Temperatura: str | None = None
    TipoTemperatura: str | None = None
    TipoUnidad: str | None = None
    CorreosNotificacion: str | None = None


class CertificadoFields(BaseModel):
    """Columns written on a certificate upsert.

    None means "leave the stored value untouched".
    """

    emision: date | None = None
    caducidad: date | None = None
    anio: str | None = None
    resolucion: date | None = None
    expediente: str | None = None


class DocumentState(BaseModel):
    """Documents section of the registry form.

    Dates and texts pre-populate from the store; file slots hold files the
    user picked and are never re-fetched.
    """

    prop_file: Attachment | None = None
    res_bonificacion_file: Attachment | None = None
    cert_bonificacion_date: date | None = None
    cert_bonificacion_file: Attachment | None = None
    rev_tec_date: date | None = None
    rev_tec_text: str = ""
    rev_tec_file: Attachment | None = None
    sanipes_date: date | None = None
    sanipes_text: str = ""
    sanipes_file: Attachment | None = None
    termoking_date: date | None = None
    termoking_file: Attachment | None = None
    limpieza_date: date | None = None
    limpieza_file: Attachment | None = None
    fumigacion_date: date | None = None
    fumigacion_file: Attachment | None = None


class StagedDocument(BaseModel):
    """A file picked in update mode, waiting for the save to commit it."""

    kind: CertificateKind
    attachment: Attachment


class CertificadoRow(BaseModel):
    """Latest certificate of one kind, as shown in the certificates grid."""

    id: int
    tipo: str
    emision: str | None = None
    resolucion: str | None = None
    anio: str | None = None
    expediente: str | None = None
    archivo: str | None = None


class AttachmentResult(BaseModel):
    """Outcome of an attachment replacement."""

    id: int
    filename: str


class VehiculoRow(BaseModel):
    """Vehicle as listed in the picker grid."""

    id: int
    Placa: str
    Marca: str | None = None
    Modelo: str | None = None
    TipoUnidad: str | None = None
    Empresa: str | None = None
    Activo: bool = True
