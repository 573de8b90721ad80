"""Tests for document validity windows and the validity watcher."""

from datetime import date

import pytest

from registro.models import DocumentState
from registro.rules.document_validity import (
    MSG_FUMIGACION,
    MSG_LIMPIEZA,
    MSG_REVISION_TECNICA,
    MSG_TERMOKING,
    DocumentValidityWatcher,
    months_ago,
    validate_documents,
)
from registro.rules.eligibility import EligibilityFlags


FIXED_TODAY = date(2026, 8, 31)

ALL_FLAGS = EligibilityFlags(
    show_res_bonificacion=True,
    show_termoking=True,
    show_sanipes=True,
    show_fumigacion=True,
    show_limpieza=True,
)
NO_FLAGS = EligibilityFlags()


class TestMonthsAgo:
    @pytest.mark.parametrize("months,today,expected", [
        (6, date(2026, 8, 15), date(2026, 2, 15)),
        (6, date(2026, 8, 31), date(2026, 3, 3)),
        (6, date(2028, 8, 31), date(2028, 3, 2)),
        (1, date(2026, 3, 31), date(2026, 3, 3)),
        (1, date(2026, 1, 15), date(2025, 12, 15)),
        (6, date(2026, 6, 30), date(2025, 12, 30)),
    ])
    def test_calendar_subtraction(self, months, today, expected):
        assert months_ago(months, today) == expected


class TestValidateDocuments:
    def test_empty_documents_are_valid(self):
        result = validate_documents(DocumentState(), ALL_FLAGS, FIXED_TODAY)
        assert result.ok
        assert result.errors == []

    def test_six_month_floor_is_inclusive(self):
        today = date(2026, 8, 15)
        doc = DocumentState(fumigacion_date=date(2026, 2, 15), termoking_date=date(2026, 2, 15))
        assert validate_documents(doc, ALL_FLAGS, today).ok

        doc = DocumentState(fumigacion_date=date(2026, 2, 14), termoking_date=date(2026, 2, 14))
        assert validate_documents(doc, ALL_FLAGS, today).errors == [MSG_FUMIGACION, MSG_TERMOKING]

    def test_floor_rolls_over_short_months(self):
        doc = DocumentState(fumigacion_date=date(2026, 3, 3), termoking_date=date(2026, 3, 3))
        assert validate_documents(doc, ALL_FLAGS, FIXED_TODAY).ok

    def test_days_before_rolled_floor_fail(self):
        doc = DocumentState(fumigacion_date=date(2026, 3, 2), termoking_date=date(2026, 3, 1))
        result = validate_documents(doc, ALL_FLAGS, FIXED_TODAY)
        assert not result.ok
        assert result.errors == [MSG_FUMIGACION, MSG_TERMOKING]

    def test_limpieza_one_month(self):
        ok = DocumentState(limpieza_date=date(2026, 7, 31))
        stale = DocumentState(limpieza_date=date(2026, 7, 30))
        assert validate_documents(ok, ALL_FLAGS, FIXED_TODAY).ok
        assert validate_documents(stale, ALL_FLAGS, FIXED_TODAY).errors == [MSG_LIMPIEZA]

    def test_revision_tecnica_expiring_today_is_valid(self):
        doc = DocumentState(rev_tec_date=FIXED_TODAY)
        assert validate_documents(doc, NO_FLAGS, FIXED_TODAY).ok

    def test_revision_tecnica_checked_without_flags(self):
        doc = DocumentState(rev_tec_date=date(2026, 8, 30))
        result = validate_documents(doc, NO_FLAGS, FIXED_TODAY)
        assert result.errors == [MSG_REVISION_TECNICA]

    def test_disabled_flags_skip_checks(self):
        doc = DocumentState(
            fumigacion_date=date(2020, 1, 1),
            termoking_date=date(2020, 1, 1),
            limpieza_date=date(2020, 1, 1),
        )
        assert validate_documents(doc, NO_FLAGS, FIXED_TODAY).ok

    def test_errors_keep_check_order(self):
        doc = DocumentState(
            fumigacion_date=date(2020, 1, 1),
            rev_tec_date=date(2020, 1, 1),
            termoking_date=date(2020, 1, 1),
            limpieza_date=date(2020, 1, 1),
        )
        result = validate_documents(doc, ALL_FLAGS, FIXED_TODAY)
        assert result.errors == [MSG_FUMIGACION, MSG_REVISION_TECNICA, MSG_TERMOKING, MSG_LIMPIEZA]

    def test_idempotent(self):
        doc = DocumentState(fumigacion_date=date(2020, 1, 1))
        first = validate_documents(doc, ALL_FLAGS, FIXED_TODAY)
        second = validate_documents(doc, ALL_FLAGS, FIXED_TODAY)
        assert first == second


class TestDocumentValidityWatcher:
    def make_watcher(self):
        pushed: list[tuple[bool, list[str]]] = []
        watcher = DocumentValidityWatcher(
            on_change=lambda ok, errors: pushed.append((ok, errors)),
            today=lambda: FIXED_TODAY,
        )
        return watcher, pushed

    def test_unchanged_inputs_do_not_revalidate(self):
        watcher, pushed = self.make_watcher()
        doc = DocumentState(fumigacion_date=date(2020, 1, 1))

        watcher.refresh(doc, ALL_FLAGS)
        watcher.refresh(doc, ALL_FLAGS)

        assert pushed == [(False, [MSG_FUMIGACION])]

    def test_flag_change_revalidates(self):
        watcher, pushed = self.make_watcher()
        doc = DocumentState(fumigacion_date=date(2020, 1, 1))

        watcher.refresh(doc, ALL_FLAGS)
        result = watcher.refresh(doc, NO_FLAGS)

        assert result.ok
        assert pushed == [(False, [MSG_FUMIGACION]), (True, [])]

    def test_unwatched_field_change_is_ignored(self):
        watcher, pushed = self.make_watcher()
        watcher.refresh(DocumentState(), ALL_FLAGS)
        watcher.refresh(DocumentState(sanipes_text="EXP-1"), ALL_FLAGS)
        assert len(pushed) == 1

    def test_reset_forces_revalidation(self):
        watcher, pushed = self.make_watcher()
        watcher.refresh(DocumentState(), ALL_FLAGS)
        watcher.reset()
        watcher.refresh(DocumentState(), ALL_FLAGS)
        assert len(pushed) == 2
