import pytest

from classops.common.config import ConfigError, config_from_mapping
from classops.ingest.ingestion_service import (
    APP_LABEL,
    FB_LABEL,
    DashboardSession,
    DataImportError,
    ImportResult,
    ImportService,
)
from classops.ingest.sheets import SheetFetchError


def _config(include_images=True):
    return config_from_mapping(
        {
            "sheets": {"years": {"2025": {"url": "https://docs.google.com/spreadsheets/d/abc"}}},
            "importer": {"include_images": include_images},
        }
    )


class FakeClient:
    def __init__(self, tabs, images=None, failing=()):
        self.tabs = tabs
        self.images = images or {}
        self.failing = set(failing)
        self.calls = []

    def fetch_sheet(self, url, sheet_name, fields):
        self.calls.append(sheet_name)
        if sheet_name in self.failing:
            raise SheetFetchError(404, f"Spreadsheet or '{sheet_name}' not found.")
        return self.tabs.get(sheet_name, [])

    def fetch_teacher_images(self, url, sheet_name):
        self.calls.append(sheet_name)
        return self.images


@pytest.fixture
def client(fb_rows, app_rows):
    return FakeClient(
        {"Central_Class_OPS": fb_rows, "App_Class_OPS": app_rows},
        images={"Rina": "https://img/rina.png"},
    )


def test_load_unifies_both_feeds(client):
    result = ImportService(client, _config()).load("2025")

    assert result.year == "2025"
    assert (result.fb_count, result.app_count) == (3, 2)
    assert [record.id for record in result.records] == ["fb-1", "fb-2", "fb-3", "app-1", "app-2"]
    assert result.images == {"Rina": "https://img/rina.png"}
    assert sorted(client.calls) == ["App_Class_OPS", "Central_Class_OPS", "Sheet29"]


def test_images_can_be_skipped(client):
    result = ImportService(client, _config(include_images=False)).load("2025")

    assert result.images == {}
    assert "Sheet29" not in client.calls


def test_any_failed_fetch_fails_the_import(client):
    client.failing = {"App_Class_OPS"}

    with pytest.raises(DataImportError) as info:
        ImportService(client, _config()).load("2025")

    assert info.value.label == APP_LABEL
    assert isinstance(info.value.cause, SheetFetchError)
    assert str(info.value).startswith("Failed to fetch data for 2025. App-Data:")


def test_both_failing_reports_fb_first(client):
    client.failing = {"Central_Class_OPS", "App_Class_OPS"}

    with pytest.raises(DataImportError) as info:
        ImportService(client, _config(include_images=False)).load("2025")

    assert info.value.label in (FB_LABEL, APP_LABEL)


def test_unknown_year_is_a_config_error(client):
    with pytest.raises(ConfigError):
        ImportService(client, _config()).load("1999")


def test_stale_import_is_discarded():
    session = DashboardSession()
    old = session.begin_import()
    new = session.begin_import()

    assert session.complete_import(new, ImportResult(year="2026", records=()))
    assert not session.complete_import(old, ImportResult(year="2025", records=()))
    assert session.year == "2026"


def test_failed_reload_keeps_previous_data(client):
    session = DashboardSession()
    service = ImportService(client, _config())

    assert session.reload(service, "2025")
    assert len(session.records) == 5

    client.failing = {"Central_Class_OPS"}
    assert not session.reload(service, "2025")
    assert len(session.records) == 5
    assert session.year == "2025"
    assert "Fb-Data" in session.error

    client.failing = set()
    assert session.reload(service, "2025")
    assert session.error is None
