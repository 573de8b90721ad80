"""
Centralized internal column names for the registry lists.

List columns keep the internal names SharePoint generated when the lists
were provisioned (spaces encoded as _x0020_), so services never spell
them inline.
"""


class CertFields:
    """Columns of the certificates list."""

    ID = "Id"
    TITLE = "Title"  # plate
    CERTIFICADO = "Certificado"
    EMISION = "Emision"
    CADUCIDAD = "Caducidad"
    ANIO = "Anio"
    RESOLUCION = "Resolucion"
    EXPEDIENTE = "Expediente"
    ATTACHMENT_FILES = "AttachmentFiles"
    ATTACHMENT_FILENAME = "AttachmentFiles/FileName"

    @classmethod
    def status_select(cls) -> list[str]:
        """Columns read when projecting the latest certificate per kind."""
        return [
            cls.ID,
            cls.TITLE,
            cls.CERTIFICADO,
            cls.EMISION,
            cls.CADUCIDAD,
            cls.ANIO,
            cls.RESOLUCION,
            cls.EXPEDIENTE,
        ]


class VehFields:
    """Columns of the vehicles list."""

    ID = "Id"
    TITLE = "Title"  # plate
    EMPRESA = "Empresa"
    EMPRESA_ID = "EmpresaId"
    EMPRESA_TITLE = "Empresa/Title"
    ACTIVO = "Activo"
    MARCA = "marca"
    MODELO = "modelo"
    TIPO_UNIDAD = "Tipo_x0020_de_x0020_unidad"

    # Model attribute -> internal column name
    BY_ATTRIBUTE: dict[str, str] = {
        "Placa": "Title",
        "SOAT": "soat",
        "Codigo": "codigo",
        "Marca": "marca",
        "Modelo": "modelo",
        "Capacidad": "capacidad",
        "Otros": "otros",
        "Rampa": "rampa",
        "LargoRampa": "largorampa",
        "AnchoRampa": "anchorampa",
        "Bonificacion": "bonificacion",
        "NroResolucion": "resolucion",
        "Activo": "Activo",
        "MedidasInternas": "medidasinternas",
        "MedidasExternas": "medidasexternas",
        "AlturaPiso": "alturapiso",
        "PesoCargaUtil": "pesocargautil",
        "PesoNeto": "pesobruto",
        "Temperatura": "temperatura",
        "TipoTemperatura": "Tipo_x0020_Temperatura",
        "TipoUnidad": "Tipo_x0020_de_x0020_unidad",
        "CorreosNotificacion": "correosnotificacion",
        "EmpresaId": "EmpresaId",
    }

    @classmethod
    def select(cls) -> list[str]:
        """Columns read when loading a full vehicle."""
        return [cls.ID, *cls.BY_ATTRIBUTE.values(), cls.EMPRESA_TITLE]

    @classmethod
    def row_select(cls) -> list[str]:
        """Columns read for the vehicle picker grid."""
        return [cls.ID, cls.TITLE, cls.MARCA, cls.MODELO, cls.TIPO_UNIDAD, cls.ACTIVO, cls.EMPRESA_TITLE]
