"""
Certificate eligibility rules.

Pure functions deciding which compliance documents a vehicle must present
from its temperature mode, unit type and bonus flag, plus the other
attribute-driven visibility rules of the vehicle form. Every comparison
runs on normalize_text output, so "Camión", "CAMION" and " camion " match.

Sanipes shares the Termoking rule and Limpieza shares the Fumigacion rule:
the pairs are aliases of the same predicate, not independent rules.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any

from registro.models import Vehiculo
from shared.config import get_settings
from shared.text_utils import matches_any, normalize_text

CARRETA = "carreta"
CAMION = "camion"
CON_TEMPERATURA = ("con temperatura", "con_temperatura", "contemperatura")
SECO = "seco"

# Option lists are (key, text) pairs as exposed by the choice column
ChoiceOptions = list[tuple[str, str]]


def requires_bonificacion_doc(vehicle: Vehiculo) -> bool:
    """Bonus resolution is required for trailers flagged with a bonus."""
    return bool(vehicle.Bonificacion) and normalize_text(vehicle.TipoUnidad) == CARRETA


def requires_termoking(vehicle: Vehiculo) -> bool:
    """Refrigerated trucks and trailers need the Termoking maintenance certificate."""
    con_temperatura = matches_any(vehicle.Temperatura, CON_TEMPERATURA)
    return con_temperatura and matches_any(vehicle.TipoUnidad, (CAMION, CARRETA))


requires_sanipes = requires_termoking


def requires_fumigacion(vehicle: Vehiculo) -> bool:
    """Every truck and trailer needs fumigation."""
    return matches_any(vehicle.TipoUnidad, (CAMION, CARRETA))


requires_limpieza = requires_fumigacion


@dataclass(frozen=True)
class EligibilityFlags:
    """Which optional document sections apply to the current vehicle."""

    show_res_bonificacion: bool = False
    show_termoking: bool = False
    show_sanipes: bool = False
    show_fumigacion: bool = False
    show_limpieza: bool = False


def compute_flags(vehicle: Vehiculo) -> EligibilityFlags:
    """
    Evaluate every eligibility rule for a vehicle.

    Args:
        vehicle: Current form values

    Returns:
        Independent flags; several may be true at once
    """
    return EligibilityFlags(
        show_res_bonificacion=requires_bonificacion_doc(vehicle),
        show_termoking=requires_termoking(vehicle),
        show_sanipes=requires_sanipes(vehicle),
        show_fumigacion=requires_fumigacion(vehicle),
        show_limpieza=requires_limpieza(vehicle),
    )


def _option_text(raw: str, options: ChoiceOptions | None) -> str:
    """Resolve a stored choice key to its label, falling back to the key."""
    for key, text in options or []:
        if str(key) == raw:
            return str(text)
    return raw


def show_tipo_temperatura(vehicle: Vehiculo, options: ChoiceOptions | None = None) -> bool:
    """Temperature sub-type is asked only for "con temperatura" vehicles."""
    raw = str(vehicle.Temperatura or "")
    return (
        normalize_text(_option_text(raw, options)) == "con temperatura"
        or normalize_text(raw) == "con temperatura"
    )


def show_capacidad_otros(vehicle: Vehiculo, options: ChoiceOptions | None = None) -> bool:
    """Free-text capacity is asked when the capacity option is "otro(s)"."""
    text = normalize_text(_option_text(str(vehicle.Capacidad or ""), options))
    return text.startswith("otro")


def default_temperatura(options: ChoiceOptions | None = None) -> str:
    """
    Default temperature mode for a new vehicle.

    Returns:
        Key of the option labelled "Seco", or "Seco" when the column has no such option
    """
    for key, text in options or []:
        if normalize_text(text) == SECO:
            return str(key)
    return "Seco"


def gated_required_fields(vehicle: Vehiculo, required: set[str]) -> set[str]:
    """
    Drop required fields whose governing flag is off.

    Ramp dimensions only matter with a ramp, and the resolution number only
    with a bonus.

    Args:
        vehicle: Current form values
        required: Fields the vehicles list marks as required

    Returns:
        Fields that must actually be filled for this vehicle
    """
    gated = set(required)
    if not vehicle.Rampa:
        gated -= {"LargoRampa", "AnchoRampa"}
    if not vehicle.Bonificacion:
        gated -= {"NroResolucion"}
    return gated


def missing_required_fields(vehicle: Vehiculo, required: set[str]) -> list[str]:
    """Required fields (after gating) left empty, in sorted order."""
    missing = []
    for name in sorted(gated_required_fields(vehicle, required)):
        value: Any = getattr(vehicle, name, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(name)
    return missing


def fabrication_year_options(today: date, first_year: int | None = None) -> list[str]:
    """Years offered for the technical review, newest first.

    first_year defaults to the FIRST_FABRICATION_YEAR setting.
    """
    if first_year is None:
        first_year = get_settings().FIRST_FABRICATION_YEAR
    return [str(year) for year in range(today.year, first_year - 1, -1)]
