"""Tests for settings loading and the import CLI exit codes."""

import json
from contextlib import nullcontext

import psycopg
import pytest

import import_catalog
from catalog_settings import ConfigError, Settings, load_settings
from db_utils import CatalogStore, StoreError

EXPORT = {
    "collections": [{"external_id": 1, "name": "Garden", "slug": "garden"}],
    "categories": [{"collection_id": 1, "name": "Planters", "slug": "planters"}],
    "subcollections": [{"external_id": 5, "name": "Pots", "category_slug": "planters"}],
    "subcategories": [{"subcollection_id": 5, "name": "Clay Pots", "slug": "clay-pots"}],
    "products": [
        {
            "name": "Red Pot",
            "slug": "red-pot",
            "description": "A red clay pot",
            "price": 12.5,
            "subcategory_slug": "clay-pots",
        }
    ],
}


def write_export(data_dir, export=EXPORT):
    for table, records in export.items():
        path = data_dir / table / "documents.jsonl"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join(json.dumps(r) for r in records) + "\n", encoding="utf-8")


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Environment-only settings pointing at an export under tmp_path."""
    monkeypatch.setitem(Settings.model_config, "env_file", None)
    for name in ("IMPORT_BATCH_SIZE", "PRODUCT_BATCH_SIZE", "APP_ENV"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CATALOG_DB_URL", "postgresql://localhost/catalog")
    monkeypatch.setenv("CATALOG_DB_AUTH_TOKEN", "token")
    monkeypatch.setenv("IMPORT_DATA_DIR", str(tmp_path))


@pytest.fixture
def connected(monkeypatch, memory_store):
    """Route CatalogStore.connect to the in-memory store; records each call."""
    calls = []

    def connect(settings):
        calls.append(settings)
        return nullcontext(memory_store)

    monkeypatch.setattr(CatalogStore, "connect", connect)
    return calls


@pytest.fixture
def output(monkeypatch, quiet_console):
    monkeypatch.setattr(import_catalog, "console", quiet_console)
    return quiet_console.file


class TestLoadSettings:
    def test_reads_environment(self, tmp_path):
        settings = load_settings()

        assert settings.catalog_db_url == "postgresql://localhost/catalog"
        assert settings.import_data_dir == tmp_path
        assert settings.import_batch_size == 1000

    @pytest.mark.parametrize("missing", ["CATALOG_DB_URL", "CATALOG_DB_AUTH_TOKEN"])
    def test_missing_required_variable(self, monkeypatch, missing):
        monkeypatch.delenv(missing)

        with pytest.raises(ConfigError, match=missing):
            load_settings()

    @pytest.mark.parametrize("name", ["IMPORT_BATCH_SIZE", "PRODUCT_BATCH_SIZE"])
    def test_non_positive_batch_size_is_a_config_error(self, monkeypatch, name):
        monkeypatch.setenv(name, "0")

        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_settings()


class TestImportCatalogMain:
    def test_success_exits_zero(self, tmp_path, memory_store, connected, output):
        write_export(tmp_path)

        assert import_catalog.main() == 0
        assert len(connected) == 1
        assert [r["slug"] for r in memory_store.tables["products"]] == ["red-pot"]
        assert "Import completed" in output.getvalue()

    def test_missing_config_exits_one_without_connecting(self, monkeypatch, connected, output):
        monkeypatch.delenv("CATALOG_DB_AUTH_TOKEN")

        assert import_catalog.main() == 1
        assert connected == []
        assert "CATALOG_DB_AUTH_TOKEN" in output.getvalue()

    def test_zero_batch_size_exits_one(self, monkeypatch, tmp_path, connected, output):
        write_export(tmp_path)
        monkeypatch.setenv("PRODUCT_BATCH_SIZE", "0")

        assert import_catalog.main() == 1
        assert connected == []

    def test_unreachable_store_exits_one(self, monkeypatch, tmp_path, output):
        write_export(tmp_path)

        def connect(settings):
            raise StoreError("Could not connect to catalog database: refused")

        monkeypatch.setattr(CatalogStore, "connect", connect)

        assert import_catalog.main() == 1
        assert "Could not connect" in output.getvalue()

    def test_malformed_input_exits_one(self, tmp_path, memory_store, connected, output):
        write_export(tmp_path)
        (tmp_path / "categories" / "documents.jsonl").write_text('{"slug": \n', encoding="utf-8")

        assert import_catalog.main() == 1
        assert memory_store.tables["categories"] == []
        assert "documents.jsonl" in output.getvalue()

    def test_missing_export_exits_one(self, connected, output):
        assert import_catalog.main() == 1
        assert "Could not read export" in output.getvalue()

    def test_failed_batch_exits_one(self, monkeypatch, tmp_path, memory_store, connected, output):
        write_export(tmp_path)

        def insert_rows(table, rows):
            raise psycopg.OperationalError("server closed the connection")

        monkeypatch.setattr(memory_store, "insert_rows", insert_rows)

        assert import_catalog.main() == 1
        assert "Database error during import" in output.getvalue()
