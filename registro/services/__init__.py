"""Registry services backed by the list store."""

from registro.services.certificado_service import CertificadoService
from registro.services.empresa_service import Empresa, EmpresaService
from registro.services.vehiculo_service import VehiculoService
from shared.config import Settings
from shared.list_store import ListStore


def create_services(
    store: ListStore, settings: Settings
) -> tuple[VehiculoService, CertificadoService, EmpresaService]:
    """Build every service on the same store handle, with list names from settings."""
    return (
        VehiculoService(store, settings.VEHICULOS_LIST_TITLE),
        CertificadoService(
            store,
            settings.CERTIFICADOS_LIST_TITLE,
            delete_batch_size=settings.DELETE_BATCH_SIZE,
        ),
        EmpresaService(
            store,
            settings.PROVEEDORES_LIST_TITLE,
            settings.PROVEEDORES_DISPLAY_FIELD,
            settings.PROVEEDORES_USER_FIELD,
        ),
    )


__all__ = [
    "CertificadoService",
    "Empresa",
    "EmpresaService",
    "VehiculoService",
    "create_services",
]
