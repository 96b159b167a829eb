"""Shared fixtures; builders live in tests/factories.py."""

import pytest

from app.models.schemas import DocumentType
from app.services.repository import DocumentRepository, RecordRepository
from app.services.storage import LocalStorage


@pytest.fixture
def records_repo() -> RecordRepository:
    return RecordRepository()


@pytest.fixture
def documents_repo() -> DocumentRepository:
    return DocumentRepository()


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
    return LocalStorage(tmp_path / "uploads")


@pytest.fixture
def po_type() -> DocumentType:
    return DocumentType.PURCHASE_ORDER
