"""
Pytest configuration and shared fixtures for all tests.

This file is automatically loaded by pytest and provides:
- An in-memory list store with call tracking and failure injection
- Service and workflow fixtures wired to that store
- A fixed "today" for date-window checks
"""

import asyncio
import copy
import logging
from collections import defaultdict
from datetime import date
from typing import Any

import pytest

from registro.services.certificado_service import CertificadoService
from registro.services.vehiculo_service import VehiculoService
from registro.workflow import RegistroWorkflow
from shared.errors import RemoteStoreError
from shared.filters import And, Eq, Or
from shared.list_store import ItemQuery


FIXED_TODAY = date(2026, 8, 31)


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

@pytest.fixture(scope="session", autouse=True)
def setup_logging():
    """Configure logging for tests."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Reduce noise from third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)


# =============================================================================
# IN-MEMORY LIST STORE
# =============================================================================

def _resolve(item: dict[str, Any], path: str) -> Any:
    """Read a column, following "Lookup/Field" paths."""
    value: Any = item
    for part in path.split("/"):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _matches(item: dict[str, Any], predicate: Any) -> bool:
    if predicate is None:
        return True
    if isinstance(predicate, Eq):
        return _resolve(item, predicate.field) == predicate.value
    if isinstance(predicate, And):
        return all(_matches(item, c) for c in predicate.clauses)
    if isinstance(predicate, Or):
        return any(_matches(item, c) for c in predicate.clauses)
    raise TypeError(f"Unsupported predicate: {predicate!r}")


class FakeListStore:
    """
    In-memory ListStore.

    Items get increasing integer ids. Every call is recorded in `calls`;
    `fail_on[operation]` makes the next call to that operation raise.
    Deletes yield once so concurrent batches overlap; `delete_groups`
    records how many deletes were in flight together.
    """

    def __init__(self):
        self.items: dict[str, dict[int, dict[str, Any]]] = defaultdict(dict)
        self.attachments: dict[tuple[str, int], dict[str, bytes]] = defaultdict(dict)
        self.calls: list[tuple[str, ...]] = []
        self.fail_on: dict[str, Exception] = {}
        self.delete_groups: list[int] = []
        self._next_id = 1
        self.in_flight = 0

    # -- helpers for tests ------------------------------------------------

    def seed(self, list_title: str, fields: dict[str, Any], item_id: int | None = None) -> int:
        if item_id is None:
            item_id = self._next_id
        self._next_id = max(self._next_id, item_id + 1)
        self.items[list_title][item_id] = {"Id": item_id, **fields}
        return item_id

    def attach(self, list_title: str, item_id: int, filename: str, content: bytes = b"x") -> None:
        self.attachments[(list_title, item_id)][filename] = content

    def filenames(self, list_title: str, item_id: int) -> list[str]:
        return list(self.attachments[(list_title, item_id)])

    def mutations(self) -> list[tuple[str, ...]]:
        reads = {"get_items", "get_attachments"}
        return [c for c in self.calls if c[0] not in reads]

    def _record(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, *args))
        if operation in self.fail_on:
            raise self.fail_on.pop(operation)

    def _require(self, list_title: str, item_id: int) -> dict[str, Any]:
        item = self.items[list_title].get(item_id)
        if item is None:
            raise RemoteStoreError(
                f"Item {item_id} not found",
                status_code=404,
                server_message="Item does not exist. It may have been deleted by another user.",
            )
        return item

    # -- ListStore protocol -----------------------------------------------

    async def get_items(self, list_title: str, query: ItemQuery) -> list[dict[str, Any]]:
        self._record("get_items", list_title)
        rows = [i for i in self.items[list_title].values() if _matches(i, query.filter)]
        if query.order_by:
            rows.sort(key=lambda i: (i.get(query.order_by) is None, i.get(query.order_by)), reverse=query.descending)
        if query.top is not None:
            rows = rows[:query.top]

        result = []
        for row in rows:
            row = copy.deepcopy(row)
            if "AttachmentFiles" in query.expand:
                row["AttachmentFiles"] = [
                    {"FileName": name} for name in self.attachments[(list_title, row["Id"])]
                ]
            result.append(row)
        return result

    async def add_item(self, list_title: str, fields: dict[str, Any]) -> dict[str, Any]:
        self._record("add_item", list_title)
        item_id = self.seed(list_title, copy.deepcopy(fields))
        return copy.deepcopy(self.items[list_title][item_id])

    async def update_item(self, list_title: str, item_id: int, fields: dict[str, Any]) -> None:
        self._record("update_item", list_title, item_id)
        self._require(list_title, item_id).update(copy.deepcopy(fields))

    async def delete_item(self, list_title: str, item_id: int) -> None:
        if self.in_flight == 0:
            self.delete_groups.append(0)
        self.in_flight += 1
        self.delete_groups[-1] += 1
        try:
            await asyncio.sleep(0)
            self._record("delete_item", list_title, item_id)
            self._require(list_title, item_id)
            del self.items[list_title][item_id]
            self.attachments.pop((list_title, item_id), None)
        finally:
            self.in_flight -= 1

    async def get_attachments(self, list_title: str, item_id: int) -> list[dict[str, Any]]:
        self._record("get_attachments", list_title, item_id)
        self._require(list_title, item_id)
        return [{"FileName": name} for name in self.attachments[(list_title, item_id)]]

    async def delete_attachment(self, list_title: str, item_id: int, filename: str) -> None:
        self._record("delete_attachment", list_title, item_id, filename)
        del self.attachments[(list_title, item_id)][filename]

    async def add_attachment(
        self, list_title: str, item_id: int, filename: str, content: bytes
    ) -> None:
        self._record("add_attachment", list_title, item_id, filename)
        files = self.attachments[(list_title, item_id)]
        if filename in files:
            raise RemoteStoreError(
                "Attachment exists",
                status_code=409,
                server_message="A file with this name already exists.",
            )
        files[filename] = content


# =============================================================================
# SERVICE FIXTURES
# =============================================================================

@pytest.fixture
def store() -> FakeListStore:
    """Provide an empty in-memory list store."""
    return FakeListStore()


@pytest.fixture
def certificados(store) -> CertificadoService:
    return CertificadoService(store, "Certificados")


@pytest.fixture
def vehiculos(store) -> VehiculoService:
    return VehiculoService(store, "Vehiculos")


@pytest.fixture
def today() -> date:
    return FIXED_TODAY


@pytest.fixture
def workflow(vehiculos, certificados, today) -> RegistroWorkflow:
    """Workflow for a coordinator (no company filter) on a fixed date."""
    return RegistroWorkflow(
        vehiculos,
        certificados,
        empresa="Transportes Andinos",
        empresa_id=7,
        today=lambda: today,
    )


# =============================================================================
# MARKERS
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
