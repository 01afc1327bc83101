# tests/conftest.py
import pytest

from inventory_sync.core.config import Settings, clear_settings_cache
from tests.mocks import FakePlatform, FakeSheetStore
from tests.mocks.rows import HEADERS, LOCATION_ID


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """Keep the host environment out of cached settings"""
    for name in ("SPREADSHEET_ID", "SHOPIFY_STORE_DOMAIN", "SHOPIFY_ADMIN_TOKEN",
                 "SHOPIFY_LOCATION_ID", "MAX_ROWS_PER_RUN", "REVERSE_SYNC_LEASE_RANGE"):
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings():
    """Provide test settings"""
    return Settings(
        _env_file=None,
        SPREADSHEET_ID="test-spreadsheet",
        SHEET_NAME="Truth_Table",
        SHOPIFY_STORE_DOMAIN="test-shop.myshopify.com",
        SHOPIFY_ADMIN_TOKEN="shpat_test",
        SHOPIFY_LOCATION_ID=LOCATION_ID,
        PUBSUB_PROJECT_ID="test-project",
        PUBSUB_SUBSCRIPTION="inventory-updates",
    )


@pytest.fixture
def platform():
    return FakePlatform()


@pytest.fixture
def make_store():
    """Build a FakeSheetStore holding Truth_Table with the standard header row"""
    def _make(*rows, header=HEADERS):
        return FakeSheetStore({"Truth_Table": [list(header)] + [list(r) for r in rows]})
    return _make
