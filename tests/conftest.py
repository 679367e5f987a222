"""
Shared pytest fixtures for the import pipeline tests.

Provides an in-memory MongoDB (mongomock), descriptor payloads and source
builders for CSV and XLSX inputs.
"""

import io

import mongomock
import openpyxl
import pytest

from libs.models import SchemaDescriptor


# =============================================================================
# MongoDB Fixtures
# =============================================================================

@pytest.fixture
def created_collection_options(monkeypatch):
    """
    Options passed to ``create_collection``, keyed by collection name.

    mongomock rejects validator/validationLevel options, so they are recorded
    here and stripped before the collection is created.
    """
    options = {}
    original = mongomock.Database.create_collection

    def create_collection(self, name, **kwargs):
        options[name] = kwargs
        return original(self, name)

    monkeypatch.setattr(mongomock.Database, "create_collection", create_collection)
    return options


@pytest.fixture
def mongomock_client(created_collection_options):
    """In-memory MongoDB client for tests."""
    return mongomock.MongoClient()


@pytest.fixture
def mongo_db(mongomock_client):
    """Empty data warehouse database."""
    return mongomock_client["data_warehouse"]


# =============================================================================
# Schema Fixtures
# =============================================================================

@pytest.fixture
def sales_schema_dict():
    """Collaborator-shaped schema payload for the sales fixture data."""
    return {
        "collection_name": "sales",
        "schema": {
            "Order ID": {"type": "int", "required": True, "unique": True},
            "Customer": {"type": "string", "index": True},
            "Amount": {"type": "double"},
            "Paid": {"type": "boolean"},
            "Order Date": {"type": "date"},
        },
        "indexes": [
            {"fields": ["Order ID"], "type": "unique"},
            {"fields": ["Customer", "Order Date"], "type": "ascending"},
        ],
        "validation_rules": {
            "$jsonSchema": {
                "bsonType": "object",
                "required": ["Order ID"],
                "properties": {"Order ID": {"bsonType": "int"}},
            }
        },
    }


@pytest.fixture
def sales_descriptor(sales_schema_dict):
    """SchemaDescriptor for the sales fixture data."""
    return SchemaDescriptor.model_validate(sales_schema_dict)


# =============================================================================
# Source Fixtures
# =============================================================================

SALES_CSV = (
    "Order ID,Customer,Amount,Paid,Order Date\n"
    "1,Alice,\"$1,234.56\",true,2024-01-31\n"
    "2,Bob,20,false,2024-02-01\n"
    "3, Carol ,,1,2024-02-02\n"
)


@pytest.fixture
def sales_csv_bytes():
    """Three-row sales CSV with a currency-formatted amount."""
    return SALES_CSV.encode("utf-8")


def _csv_with_rows(row_count: int) -> bytes:
    lines = ["id,name"]
    lines.extend(f"{i},name_{i}" for i in range(1, row_count + 1))
    return ("\n".join(lines) + "\n").encode("utf-8")


def _xlsx_from_rows(rows) -> bytes:
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(list(row))
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_csv():
    """Factory: CSV bytes with N data rows and columns id,name."""
    return _csv_with_rows


@pytest.fixture
def make_xlsx():
    """Factory: XLSX bytes from row lists; the first row is the header."""
    return _xlsx_from_rows
