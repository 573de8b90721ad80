"""
Validity-window checks for staged documents.

Each check compares a document date against today's date-only value in
the configured local timezone. Absent dates never produce a violation;
only the checks whose eligibility flag is on run, except the technical
review check which always runs.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable
from zoneinfo import ZoneInfo

from registro.models import DocumentState
from registro.rules.eligibility import EligibilityFlags

logger = logging.getLogger(__name__)

FUMIGACION_MONTHS = 6
TERMOKING_MONTHS = 6
LIMPIEZA_MONTHS = 1

MSG_FUMIGACION = "Fumigación: la fecha de emisión no puede superar 6 meses."
MSG_REVISION_TECNICA = "Revisión técnica: la fecha de vencimiento debe estar vigente."
MSG_TERMOKING = "Termoking: la fecha de emisión no puede tener una antigüedad mayor a 6 meses."
MSG_LIMPIEZA = "Limpieza y desinfección: la fecha de emisión no puede superar 1 mes."


def today_local(timezone: str) -> date:
    """Current date at the given timezone."""
    return datetime.now(ZoneInfo(timezone)).date()


def months_ago(months: int, today: date) -> date:
    """
    Subtract calendar months from a date.

    A day missing from the target month rolls over into the next one, so
    31 August minus 6 months is 3 March (2 March in leap years).

    Args:
        months: Number of calendar months to go back
        today: Reference date

    Returns:
        The floor date of a "within the last N months" window
    """
    month_index = today.year * 12 + (today.month - 1) - months
    year, month = divmod(month_index, 12)
    return date(year, month + 1, 1) + timedelta(days=today.day - 1)


def is_within_last_months(candidate: date | None, months: int, today: date) -> bool:
    """True when candidate is on or after the N-months floor."""
    return candidate is not None and candidate >= months_ago(months, today)


@dataclass(frozen=True)
class ValidityResult:
    """Outcome of a validation run; errors keep check order."""

    ok: bool
    errors: list[str] = field(default_factory=list)


def validate_documents(
    doc: DocumentState,
    flags: EligibilityFlags,
    today: date,
) -> ValidityResult:
    """
    Run the document date checks that apply to the current vehicle.

    Checks, in order: fumigation (6 months), technical review expiry,
    Termoking (6 months), cleaning and disinfection (1 month).

    Args:
        doc: Documents section of the form
        flags: Eligibility flags of the current vehicle
        today: Local date-only "today"

    Returns:
        ValidityResult with every violation message
    """
    errors: list[str] = []

    if flags.show_fumigacion and doc.fumigacion_date:
        if not is_within_last_months(doc.fumigacion_date, FUMIGACION_MONTHS, today):
            errors.append(MSG_FUMIGACION)

    if doc.rev_tec_date and doc.rev_tec_date < today:
        errors.append(MSG_REVISION_TECNICA)

    if flags.show_termoking and doc.termoking_date:
        if not is_within_last_months(doc.termoking_date, TERMOKING_MONTHS, today):
            errors.append(MSG_TERMOKING)

    if flags.show_limpieza and doc.limpieza_date:
        if not is_within_last_months(doc.limpieza_date, LIMPIEZA_MONTHS, today):
            errors.append(MSG_LIMPIEZA)

    return ValidityResult(ok=not errors, errors=errors)


ValidityCallback = Callable[[bool, list[str]], None]


class DocumentValidityWatcher:
    """
    Re-validates documents when a watched date or flag changes.

    The watched key is the four checked dates plus the three flags that
    gate them; refreshing with an unchanged key does nothing. Each real
    run pushes (ok, errors) to the callback.
    """

    def __init__(self, on_change: ValidityCallback, today: Callable[[], date]):
        self._on_change = on_change
        self._today = today
        self._last_key: tuple | None = None
        self.result = ValidityResult(ok=True)

    @staticmethod
    def _watch_key(doc: DocumentState, flags: EligibilityFlags, today: date) -> tuple:
        return (
            doc.fumigacion_date,
            doc.rev_tec_date,
            doc.termoking_date,
            doc.limpieza_date,
            flags.show_fumigacion,
            flags.show_termoking,
            flags.show_limpieza,
            today,
        )

    def refresh(self, doc: DocumentState, flags: EligibilityFlags) -> ValidityResult:
        """Validate if the watched inputs changed since the last run."""
        today = self._today()
        key = self._watch_key(doc, flags, today)
        if key == self._last_key:
            return self.result

        self._last_key = key
        self.result = validate_documents(doc, flags, today)
        if not self.result.ok:
            logger.debug(f"Document validity errors: {self.result.errors}")
        self._on_change(self.result.ok, list(self.result.errors))
        return self.result

    def reset(self) -> None:
        """Forget the last key so the next refresh always runs."""
        self._last_key = None
        self.result = ValidityResult(ok=True)
