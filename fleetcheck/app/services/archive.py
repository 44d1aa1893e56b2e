"""
Off-site archive for checklist reports.

Reports are filed into one folder per vehicle. The folder id is cached on the
vehicle the first time it is created and reused afterwards. Two submissions
racing for a vehicle without a cached folder may both create one; the last
writer's id is kept on the vehicle.

``GoogleDriveArchiveUploader`` talks to the Drive v3 REST API with a service
account: a signed RS256 assertion is exchanged for an access token, which is
cached until shortly before it expires.
"""

import json
import logging
import os
import time
import uuid
from typing import Any, Dict, Optional, Protocol

import httpx
from jose import jwt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fleetcheck.app.core.config import settings
from fleetcheck.app.core.reliability import CircuitBreaker, run_with_timeout
from fleetcheck.app.models.vehicle import Vehicle

logger = logging.getLogger(__name__)

DRIVE_SCOPES = "https://www.googleapis.com/auth/drive.file https://www.googleapis.com/auth/drive"
DRIVE_FILES_URL = "https://www.googleapis.com/drive/v3/files"
DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"

TOKEN_LIFETIME_SECONDS = 3600
TOKEN_REFRESH_MARGIN_SECONDS = 60


class ArchiveError(Exception):
    """Archive store rejected a request or answered unexpectedly."""


class ArchiveUploader(Protocol):
    async def ensure_folder(self, name: str) -> str:
        ...

    async def upload(self, folder_id: str, filename: str, content: bytes, mime_type: str = "application/pdf") -> str:
        ...


def load_service_account_credentials(value: str) -> Dict[str, Any]:
    """Parse inline service-account JSON, or read it from the file ``value`` points to."""
    value = value.strip()
    if value.startswith("{"):
        return json.loads(value)
    with open(os.path.expanduser(value), "r", encoding="utf-8") as handle:
        return json.load(handle)


def _escape_query_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class GoogleDriveArchiveUploader:
    """Archive uploader backed by Google Drive."""

    def __init__(
        self,
        credentials: Dict[str, Any],
        parent_folder_id: Optional[str] = None,
        timeout: float = 30.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        for key in ("client_email", "private_key"):
            if not credentials.get(key):
                raise ValueError(f"Service account credentials are missing '{key}'")
        self.credentials = credentials
        self.parent_folder_id = parent_folder_id or None
        self.timeout = timeout
        self.circuit_breaker = circuit_breaker or CircuitBreaker()
        self._transport = transport
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _build_assertion(self) -> str:
        now = int(time.time())
        claims = {
            "iss": self.credentials["client_email"],
            "scope": DRIVE_SCOPES,
            "aud": self.credentials.get("token_uri", DEFAULT_TOKEN_URI),
            "iat": now,
            "exp": now + TOKEN_LIFETIME_SECONDS,
        }
        # Domain-wide delegation
        if self.credentials.get("subject"):
            claims["sub"] = self.credentials["subject"]
        headers = {"kid": self.credentials["private_key_id"]} if self.credentials.get("private_key_id") else None
        return jwt.encode(claims, self.credentials["private_key"], algorithm="RS256", headers=headers)

    async def _get_access_token(self, client: httpx.AsyncClient) -> str:
        if self._access_token and time.time() < self._token_expires_at - TOKEN_REFRESH_MARGIN_SECONDS:
            return self._access_token

        token_resp = await client.post(
            self.credentials.get("token_uri", DEFAULT_TOKEN_URI),
            data={"grant_type": JWT_BEARER_GRANT, "assertion": self._build_assertion()},
        )
        token_resp.raise_for_status()
        body = token_resp.json()
        token = body.get("access_token")
        if not token:
            raise ArchiveError("Token endpoint returned no access_token")

        self._access_token = token
        self._token_expires_at = time.time() + int(body.get("expires_in", TOKEN_LIFETIME_SECONDS))
        return token

    async def _auth_headers(self, client: httpx.AsyncClient) -> Dict[str, str]:
        return {"Authorization": f"Bearer {await self._get_access_token(client)}"}

    async def ensure_folder(self, name: str) -> str:
        return await self.circuit_breaker.call(self._ensure_folder, name)

    async def upload(self, folder_id: str, filename: str, content: bytes, mime_type: str = "application/pdf") -> str:
        return await self.circuit_breaker.call(self._upload, folder_id, filename, content, mime_type)

    async def _ensure_folder(self, name: str) -> str:
        async with self._client() as client:
            headers = await self._auth_headers(client)

            # Reuse a folder left by an earlier (or concurrent) run. Without a
            # parent the search would match same-named folders anywhere.
            if self.parent_folder_id:
                existing = await self._find_folder(client, headers, name)
                if existing:
                    return existing

            metadata: Dict[str, Any] = {"name": name, "mimeType": FOLDER_MIME_TYPE}
            if self.parent_folder_id:
                metadata["parents"] = [self.parent_folder_id]
            create_resp = await client.post(
                DRIVE_FILES_URL,
                headers=headers,
                params={"fields": "id", "supportsAllDrives": "true"},
                json=metadata,
            )
            create_resp.raise_for_status()
            folder_id = create_resp.json().get("id")
            if not folder_id:
                raise ArchiveError(f"Folder creation for '{name}' returned no id")
            logger.info(f"Created archive folder '{name}' ({folder_id})")
            return folder_id

    async def _find_folder(self, client: httpx.AsyncClient, headers: Dict[str, str], name: str) -> Optional[str]:
        query = (
            f"name = '{_escape_query_value(name)}' and mimeType = '{FOLDER_MIME_TYPE}' and trashed = false"
            f" and '{_escape_query_value(self.parent_folder_id)}' in parents"
        )
        search_resp = await client.get(
            DRIVE_FILES_URL,
            headers=headers,
            params={
                "q": query,
                "fields": "files(id,name)",
                "pageSize": 1,
                "supportsAllDrives": "true",
                "includeItemsFromAllDrives": "true",
            },
        )
        search_resp.raise_for_status()
        files = search_resp.json().get("files") or []
        return files[0]["id"] if files else None

    async def _upload(self, folder_id: str, filename: str, content: bytes, mime_type: str) -> str:
        boundary = f"fleetcheck-{uuid.uuid4().hex}"
        metadata = json.dumps({"name": filename, "parents": [folder_id]})
        body = b"".join([
            f"--{boundary}\r\n".encode(),
            b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
            metadata.encode("utf-8"),
            f"\r\n--{boundary}\r\n".encode(),
            f"Content-Type: {mime_type}\r\n\r\n".encode(),
            content,
            f"\r\n--{boundary}--\r\n".encode(),
        ])

        async with self._client() as client:
            headers = await self._auth_headers(client)
            headers["Content-Type"] = f"multipart/related; boundary={boundary}"
            upload_resp = await client.post(
                DRIVE_UPLOAD_URL,
                headers=headers,
                params={"uploadType": "multipart", "fields": "id", "supportsAllDrives": "true"},
                content=body,
            )
            upload_resp.raise_for_status()
            file_id = upload_resp.json().get("id")
            if not file_id:
                raise ArchiveError(f"Upload of '{filename}' returned no id")
            return file_id


async def ensure_vehicle_folder(
    db: AsyncSession,
    vehicle: Vehicle,
    uploader: ArchiveUploader,
    timeout: Optional[float] = None,
) -> str:
    """
    Return the vehicle's archive folder id, creating and caching it if needed.

    Errors from the archive store propagate; the caller decides whether they matter.
    """
    if vehicle.archive_folder_id:
        return vehicle.archive_folder_id

    folder_id = await run_with_timeout(
        uploader.ensure_folder(vehicle.registration),
        timeout or settings.archive_timeout_seconds,
        "Archive folder creation",
    )
    vehicle.archive_folder_id = folder_id
    await db.commit()
    return folder_id


_uploader: Optional[GoogleDriveArchiveUploader] = None
_uploader_unusable = False


def build_archive_uploader() -> Optional[GoogleDriveArchiveUploader]:
    if not settings.archive_enabled:
        return None
    credentials = load_service_account_credentials(settings.google_service_account_json)
    return GoogleDriveArchiveUploader(
        credentials=credentials,
        parent_folder_id=settings.archive_parent_folder_id,
        timeout=settings.archive_timeout_seconds,
        circuit_breaker=CircuitBreaker(
            failure_threshold=settings.archive_failure_threshold,
            reset_timeout=settings.archive_reset_timeout_seconds,
        ),
    )


def get_archive_uploader() -> Optional[ArchiveUploader]:
    """
    FastAPI dependency returning the process-wide archive uploader.

    None when archiving is not configured or the credentials cannot be loaded;
    submissions then skip the archive step. A credentials failure is remembered
    until the process restarts.
    """
    global _uploader, _uploader_unusable
    if _uploader is None and settings.archive_enabled and not _uploader_unusable:
        try:
            _uploader = build_archive_uploader()
        except (OSError, ValueError) as exc:
            _uploader_unusable = True
            logger.error(f"Archive integration disabled, credentials unusable: {exc}")
            return None
    return _uploader


async def prepare_vehicle_folder(db: AsyncSession, vehicle: Vehicle, uploader: Optional[ArchiveUploader]) -> Optional[str]:
    """Best-effort folder creation when a vehicle is registered."""
    if uploader is None:
        return None
    try:
        return await ensure_vehicle_folder(db, vehicle, uploader)
    except SQLAlchemyError:
        raise
    except Exception as exc:
        logger.warning(f"Archive folder for vehicle {vehicle.registration} not created yet: {exc}")
        return None
