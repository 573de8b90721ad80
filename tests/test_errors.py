"""Tests for the error hierarchy and message extraction."""

import logging

import pytest

from shared.errors import (
    ErrorCategory,
    NotFoundError,
    RemoteStoreError,
    StoreConfigurationError,
    ValidationError,
    categorize,
    extract_error_message,
    get_error_logger,
)


class TestCategories:
    @pytest.mark.parametrize("error,category", [
        (ValidationError("Falta placa"), ErrorCategory.VALIDATION_ERROR),
        (NotFoundError("No existe"), ErrorCategory.NOT_FOUND_ERROR),
        (RemoteStoreError("boom", status_code=500), ErrorCategory.REMOTE_STORE_ERROR),
        (StoreConfigurationError("missing url"), ErrorCategory.CONFIGURATION_ERROR),
        (RuntimeError("other"), ErrorCategory.UNEXPECTED_ERROR),
    ])
    def test_categorize(self, error, category):
        assert categorize(error) == category

    def test_validation_error_keeps_every_message(self):
        error = ValidationError(["uno", "dos"])
        assert error.messages == ["uno", "dos"]
        assert str(error) == "uno; dos"

    def test_validation_error_summary_overrides_text(self):
        error = ValidationError(["uno"], summary="Revise los documentos")
        assert error.messages == ["uno"]
        assert str(error) == "Revise los documentos"


class TestExtractErrorMessage:
    def test_server_message_wins(self):
        error = RemoteStoreError(
            "POST /items failed with status 400",
            status_code=400,
            server_message="El valor de la columna no es válido",
        )
        assert extract_error_message(error) == "El valor de la columna no es válido"

    def test_falls_back_to_exception_text(self):
        error = RemoteStoreError("GET /items failed: timeout")
        assert extract_error_message(error) == "GET /items failed: timeout"

    def test_falls_back_to_repr(self):
        assert extract_error_message(KeyError()) == "KeyError()"


class TestErrorLogger:
    def test_log_error_returns_reference(self, caplog):
        with caplog.at_level(logging.WARNING):
            log_ref = get_error_logger().log_error(
                error=NotFoundError("sin registro"),
                category=ErrorCategory.NOT_FOUND_ERROR,
                plate="ABC-123",
                operation="replace_attachment",
                exc_info=False,
            )

        assert log_ref.startswith("err_")
        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.plate == "ABC-123"
        assert log_ref in record.getMessage()

    def test_store_errors_log_at_error_level(self, caplog):
        with caplog.at_level(logging.WARNING):
            get_error_logger().log_error(
                error=RemoteStoreError("boom", status_code=503),
                category=ErrorCategory.REMOTE_STORE_ERROR,
                exc_info=False,
            )

        assert caplog.records[-1].levelno == logging.ERROR
