"""
Notion API client for exporting venues as database pages.

Each campaign may carry its own integration token and database id.
"""

import logging
from typing import Dict, Optional

import requests

from .errors import NotionAuthError

logger = logging.getLogger(__name__)

NOTION_API_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
NOTION_TEXT_LIMIT = 2000
REQUEST_TIMEOUT = 30

_AUTH_CODES = ("unauthorized", "restricted_resource")


class NotionClient:
    """Thin wrapper over the two Notion endpoints the export needs."""

    def __init__(self, token: str, session: Optional[requests.Session] = None):
        self.token = token
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
            "Notion-Version": NOTION_VERSION,
        }

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = {}
        return body.get("message") or f"Notion API error: {response.status_code}"

    @staticmethod
    def _is_auth_failure(response: requests.Response) -> bool:
        if response.status_code == 401:
            return True
        try:
            code = (response.json() or {}).get("code") or ""
        except ValueError:
            code = ""
        return code in _AUTH_CODES

    def create_page(self, database_id: str, fields: Dict) -> str:
        """
        Create one page in the database; return its id.

        Args:
            fields: venue_name, address, google_maps_url, contacts, recommended

        Raises:
            NotionAuthError: token rejected or database not shared with it
            requests.HTTPError: any other API error
        """
        response = self.session.post(
            f"{NOTION_API_URL}/pages",
            headers=self._headers(),
            json=build_page_payload(database_id, fields),
            timeout=REQUEST_TIMEOUT,
        )
        if not response.ok:
            message = self._error_message(response)
            logger.error(f"Notion API error ({response.status_code}): {message}")
            if self._is_auth_failure(response):
                raise NotionAuthError(message)
            raise requests.HTTPError(message, response=response)
        return response.json().get("id")

    def validate_connection(self, database_id: str) -> Dict:
        """Check the token can read the database. Never raises for API errors."""
        try:
            response = self.session.get(
                f"{NOTION_API_URL}/databases/{database_id}",
                headers=self._headers(),
                timeout=REQUEST_TIMEOUT,
            )
        except requests.exceptions.RequestException as e:
            return {"valid": False, "error": str(e)}

        if not response.ok:
            return {"valid": False, "error": self._error_message(response)}

        title = response.json().get("title") or []
        db_title = title[0].get("plain_text") if title else None
        return {"valid": True, "db_title": db_title or "Untitled"}


def _text(content: str, url: Optional[str] = None) -> Dict:
    text = {"content": content}
    if url:
        text["link"] = {"url": url}
    return {"text": text}


def build_page_payload(database_id: str, fields: Dict) -> Dict:
    """
    Page body for the venue database.

    Columns: Venue_Location (title: name, address, maps link), Contacts and
    Recommended (rich text, truncated to Notion's limit).
    """
    maps_url = fields.get("google_maps_url")
    address = fields.get("address") or ""

    title = [
        _text(fields["venue_name"] + "\n"),
        _text(address + ("\n" if maps_url else "")),
    ]
    if maps_url:
        title.append(_text(maps_url, url=maps_url))

    return {
        "parent": {"database_id": database_id},
        "properties": {
            "Venue_Location": {"title": title},
            "Contacts": {"rich_text": [_text((fields.get("contacts") or "")[:NOTION_TEXT_LIMIT])]},
            "Recommended": {"rich_text": [_text((fields.get("recommended") or "")[:NOTION_TEXT_LIMIT])]},
        },
        "children": [
            {
                "object": "block",
                "type": "paragraph",
                "paragraph": {"rich_text": [_text(address)]},
            }
        ],
    }
