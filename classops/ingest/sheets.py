"""Google Sheets source for the class operations feeds."""

from __future__ import annotations

import logging
import os
import re
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from classops.common.models import RawRecord

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]
TOKEN_URI = "https://oauth2.googleapis.com/token"

_SPREADSHEET_ID = re.compile(r"/spreadsheets/d/([a-zA-Z0-9-_]+)")
_DRIVE_FILE_ID = re.compile(r"/file/d/([a-zA-Z0-9_-]+)")
_NON_ALNUM = re.compile(r"[^a-z0-9]")


class SheetFetchError(Exception):
    """A sheet could not be read; ``status`` follows HTTP conventions."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message

    def __str__(self) -> str:
        return f"{self.message} (status {self.status})"


def spreadsheet_id(url: str) -> str:
    if not url:
        raise SheetFetchError(400, "Google Sheet URL is required.")
    match = _SPREADSHEET_ID.search(url)
    if not match:
        raise SheetFetchError(400, "Invalid Google Sheet URL.")
    return match.group(1)


def normalize_header(header: str) -> str:
    return _NON_ALNUM.sub("", str(header).lower())


def map_rows(values: Sequence[Sequence[Any]], fields: Iterable[str]) -> List[RawRecord]:
    """Turn a header row plus data rows into records keyed by ``fields``.

    Header cells are matched to field names ignoring case, spaces and
    punctuation ("Total Duration" -> ``total_duration``). Unknown columns are
    dropped and every known field is present, blank when the sheet lacks it.
    """

    fields = tuple(fields)
    if len(values) < 2:
        return []
    lookup = {normalize_header(name): name for name in fields}
    column_map: Dict[int, str] = {}
    for index, header in enumerate(values[0]):
        key = lookup.get(normalize_header(str(header).strip()))
        if key:
            column_map[index] = key

    records: List[RawRecord] = []
    for row in values[1:]:
        record = {name: "" for name in fields}
        for index, key in column_map.items():
            if index < len(row) and row[index] is not None:
                record[key] = str(row[index])
        records.append(record)
    return records


def drive_image_url(url: str) -> str:
    """Rewrite Drive share links into directly embeddable image URLs."""

    match = _DRIVE_FILE_ID.search(url)
    if match:
        return f"https://lh3.googleusercontent.com/d/{match.group(1)}"
    return url


def parse_image_rows(values: Sequence[Sequence[Any]], sheet_name: str) -> Dict[str, str]:
    if len(values) < 1:
        return {}
    header = [str(cell).strip().lower() for cell in values[0]]
    try:
        name_index = header.index("teacher name")
        picture_index = header.index("picture")
    except ValueError as exc:
        raise SheetFetchError(
            400, f"Required columns 'Teacher Name' or 'Picture' not found in '{sheet_name}'."
        ) from exc

    images: Dict[str, str] = {}
    for row in values[1:]:
        if len(row) <= max(name_index, picture_index):
            continue
        name = str(row[name_index] or "").strip()
        picture = str(row[picture_index] or "").strip()
        if name and picture:
            images[name] = drive_image_url(picture)
    return images


class SheetsClient:
    """Reads sheet tabs through the Google Sheets v4 API.

    A fresh API service is built for every request so the client can be
    shared by the import worker threads.
    """

    def __init__(
        self,
        credentials_file: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
        service_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        self.credentials_file = credentials_file
        self.environ = os.environ if environ is None else environ
        self._service_factory = service_factory

    def fetch_sheet(self, url: str, sheet_name: str, fields: Iterable[str]) -> List[RawRecord]:
        values = self._values(url, sheet_name)
        records = map_rows(values, fields)
        logger.info("Fetched %d rows from '%s'", len(records), sheet_name)
        return records

    def fetch_teacher_images(self, url: str, sheet_name: str) -> Dict[str, str]:
        values = self._values(url, sheet_name)
        images = parse_image_rows(values, sheet_name)
        logger.info("Fetched %d teacher images from '%s'", len(images), sheet_name)
        return images

    def _values(self, url: str, sheet_name: str) -> List[List[Any]]:
        sheet_id = spreadsheet_id(url)
        service = self._service()
        try:
            response = (
                service.spreadsheets()
                .values()
                .get(spreadsheetId=sheet_id, range=sheet_name)
                .execute()
            )
        except HttpError as exc:
            raise _from_http_error(exc, sheet_name) from exc
        except OSError as exc:
            raise SheetFetchError(
                503, "Could not connect to Google Sheets. Please check your network connection."
            ) from exc
        return response.get("values", []) or []

    def _service(self) -> Any:
        if self._service_factory is not None:
            return self._service_factory()
        return build("sheets", "v4", credentials=self._credentials(), cache_discovery=False)

    def _credentials(self) -> Credentials:
        if self.credentials_file:
            return Credentials.from_service_account_file(self.credentials_file, scopes=SCOPES)
        email = self.environ.get("GOOGLE_SERVICE_ACCOUNT_EMAIL")
        private_key = self.environ.get("GOOGLE_PRIVATE_KEY")
        if not email or not private_key:
            raise SheetFetchError(
                500, "Server configuration error: Missing Google service account credentials."
            )
        info = {
            "client_email": email,
            "private_key": private_key.replace("\\n", "\n"),
            "token_uri": TOKEN_URI,
        }
        return Credentials.from_service_account_info(info, scopes=SCOPES)


def _from_http_error(exc: HttpError, sheet_name: str) -> SheetFetchError:
    status = int(getattr(exc.resp, "status", 500) or 500)
    if status == 403:
        return SheetFetchError(
            403,
            "Permission denied. Please make sure the service account has 'Viewer' access to the Google Sheet.",
        )
    if status == 404:
        return SheetFetchError(404, f"Spreadsheet or '{sheet_name}' not found. Please double-check the URL.")
    reason = getattr(exc, "reason", None) or str(exc)
    return SheetFetchError(status, f"Google API Error: {reason}")
