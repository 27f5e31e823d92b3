"""Google Sheets API access for manifest tabs.

Alternative to the public CSV export URLs: reads tabs through the Sheets API
with OAuth credentials and serialises them back to CSV text so the same
parsers apply.
"""

import csv
import io
import logging
import time
from pathlib import Path
from typing import List, Optional

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)

# Rate limiting: 60 requests per minute per user
API_CALL_DELAY = 0.5  # seconds

SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]


def authenticate_google(
    credentials_path: Path = Path("credentials.json"),
    token_path: Path = Path("token.json"),
):
    """Authenticate with Google API using OAuth2.

    Args:
        credentials_path: OAuth client secrets downloaded from Cloud Console.
        token_path: Cached user token, refreshed and rewritten as needed.

    Returns:
        Credentials object for Google API calls.

    Raises:
        FileNotFoundError: If no token and no credentials.json exist.
    """
    creds = None
    if token_path.exists():
        creds = Credentials.from_authorized_user_file(str(token_path), SCOPES)

    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            creds.refresh(Request())
        else:
            if not credentials_path.exists():
                raise FileNotFoundError(
                    "credentials.json not found. "
                    "Please download it from Google Cloud Console."
                )
            flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), SCOPES)
            creds = flow.run_local_server(port=0)

        with open(token_path, "w") as token_file:
            token_file.write(creds.to_json())

    return creds


def connect_to_sheets():
    """Build an authenticated Sheets v4 service."""
    creds = authenticate_google()
    return build("sheets", "v4", credentials=creds)


def read_sheet_data(sheets_service, spreadsheet_id: str, sheet_name: str, max_retries: int = 3):
    """Read a tab's values with retry on rate limiting.

    Values are read FORMATTED so quantities look the same as in the CSV
    export ("1,200").

    Args:
        sheets_service: Google Sheets API service object.
        spreadsheet_id: ID of the spreadsheet.
        sheet_name: Name of the sheet tab.
        max_retries: Attempts on HTTP 429.

    Returns:
        List of rows (lists of values); [] on failure.
    """
    quoted_range = f"'{sheet_name}'"

    for attempt in range(max_retries):
        try:
            result = (
                sheets_service.spreadsheets()
                .values()
                .get(
                    spreadsheetId=spreadsheet_id,
                    range=quoted_range,
                    valueRenderOption="FORMATTED_VALUE",
                )
                .execute()
            )
            time.sleep(API_CALL_DELAY)
            return result.get("values", [])
        except HttpError as e:
            if e.resp.status == 429:
                wait_time = 2**attempt  # 1s, 2s, 4s...
                logger.warning(
                    f"Rate limited reading {sheet_name}, retrying in {wait_time}s "
                    f"(attempt {attempt + 1}/{max_retries})"
                )
                time.sleep(wait_time)
            else:
                logger.error(f"Failed to read sheet {sheet_name} from {spreadsheet_id}: {e}")
                return []

    logger.error(f"Failed to read sheet {sheet_name} after {max_retries} retries")
    return []


def rows_to_csv_text(rows: List[list]) -> str:
    """Serialise API rows to CSV text (quoted where needed)."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue()


def read_sheet_as_csv_text(
    sheets_service, spreadsheet_id: str, sheet_name: str
) -> Optional[str]:
    """Read a tab and return it as CSV text, or None if it came back empty."""
    values = read_sheet_data(sheets_service, spreadsheet_id, sheet_name)
    if not values:
        logger.warning(f"No data read from tab {sheet_name}")
        return None
    return rows_to_csv_text(values)
