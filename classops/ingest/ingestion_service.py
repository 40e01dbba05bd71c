"""Import both class feeds (and teacher images) for one academic year."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional, Tuple

from classops.analytics.unifier import unify
from classops.common.config import AppConfig, ConfigError
from classops.common.models import APP_FIELDS, FB_FIELDS, UnifiedRecord
from classops.ingest.sheets import SheetsClient

logger = logging.getLogger(__name__)

FB_LABEL = "Fb-Data"
APP_LABEL = "App-Data"
IMAGES_LABEL = "Teacher Images"


class DataImportError(RuntimeError):
    """One import cycle failed; nothing from it should be shown."""

    def __init__(self, year: str, label: str, cause: BaseException) -> None:
        self.year = year
        self.label = label
        self.cause = cause
        super().__init__(f"Failed to fetch data for {year}. {label}: {cause}")


@dataclass(frozen=True)
class ImportResult:
    year: str
    records: Tuple[UnifiedRecord, ...]
    images: Mapping[str, str] = field(default_factory=dict)
    fb_count: int = 0
    app_count: int = 0


class ImportService:
    """Fetches the Fb and App tabs concurrently and unifies them.

    Every fetch must succeed; the first failure cancels whatever has not
    started yet and surfaces as a single ``DataImportError``.
    """

    def __init__(
        self,
        client: SheetsClient,
        config: AppConfig,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.client = client
        self.config = config
        self.environ = environ

    def load(self, year: str) -> ImportResult:
        year = str(year)
        url = self.config.sheet_url(year, self.environ)
        sheets = self.config.sheets
        tasks: Dict[str, Callable[[], object]] = {
            FB_LABEL: lambda: self.client.fetch_sheet(url, sheets.fb_sheet, FB_FIELDS),
            APP_LABEL: lambda: self.client.fetch_sheet(url, sheets.app_sheet, APP_FIELDS),
        }
        if self.config.importer.include_images:
            tasks[IMAGES_LABEL] = lambda: self.client.fetch_teacher_images(url, sheets.images_sheet)

        logger.info("Importing class data for %s", year)
        results = self._run_all(year, tasks)
        fb_rows = results[FB_LABEL]
        app_rows = results[APP_LABEL]
        records = tuple(unify(fb_rows, app_rows))
        logger.info(
            "Imported %d Fb and %d App classes for %s", len(fb_rows), len(app_rows), year
        )
        return ImportResult(
            year=year,
            records=records,
            images=dict(results.get(IMAGES_LABEL) or {}),
            fb_count=len(fb_rows),
            app_count=len(app_rows),
        )

    def _run_all(self, year: str, tasks: Dict[str, Callable[[], object]]) -> Dict[str, object]:
        executor = ThreadPoolExecutor(
            max_workers=min(self.config.importer.max_workers, len(tasks)),
            thread_name_prefix="sheet-import",
        )
        try:
            futures = {executor.submit(task): label for label, task in tasks.items()}
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            # Report the failure of the first task in declaration order.
            for future, label in futures.items():
                if future in done and future.exception() is not None:
                    exc = future.exception()
                    logger.error("Import for %s failed while fetching %s: %s", year, label, exc)
                    raise DataImportError(year, label, exc) from exc
            return {label: future.result() for future, label in futures.items()}
        finally:
            executor.shutdown(wait=False, cancel_futures=True)


class DashboardSession:
    """Holds the unified collection for the current import cycle.

    Imports are tagged with a generation number; only the most recently
    started import may replace the data, so a slow response for a year the
    user already switched away from is dropped.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generation = 0
        self.year: Optional[str] = None
        self.records: Tuple[UnifiedRecord, ...] = ()
        self.images: Dict[str, str] = {}
        self.error: Optional[str] = None

    def begin_import(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def complete_import(self, token: int, result: ImportResult) -> bool:
        with self._lock:
            if token != self._generation:
                logger.info("Discarding stale import for %s (generation %d)", result.year, token)
                return False
            self.year = result.year
            self.records = result.records
            self.images = dict(result.images)
            self.error = None
            return True

    def fail_import(self, token: int, error: Exception) -> bool:
        with self._lock:
            if token != self._generation:
                return False
            self.error = str(error)
            return True

    def reload(self, service: ImportService, year: str) -> bool:
        """Run one import cycle; on failure the previous data stays in place."""

        token = self.begin_import()
        try:
            result = service.load(year)
        except (DataImportError, ConfigError) as exc:
            self.fail_import(token, exc)
            return False
        return self.complete_import(token, result)
