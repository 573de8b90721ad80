"""Pure rules evaluated on the registry form."""

from registro.rules.document_validity import (
    DocumentValidityWatcher,
    ValidityResult,
    is_within_last_months,
    months_ago,
    validate_documents,
)
from registro.rules.eligibility import (
    EligibilityFlags,
    compute_flags,
    requires_bonificacion_doc,
    requires_fumigacion,
    requires_limpieza,
    requires_sanipes,
    requires_termoking,
)

__all__ = [
    # Eligibility
    "EligibilityFlags",
    "compute_flags",
    "requires_bonificacion_doc",
    "requires_termoking",
    "requires_sanipes",
    "requires_fumigacion",
    "requires_limpieza",
    # Validity
    "DocumentValidityWatcher",
    "ValidityResult",
    "validate_documents",
    "months_ago",
    "is_within_last_months",
]
