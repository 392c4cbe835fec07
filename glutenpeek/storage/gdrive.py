"""Google Drive object store via OAuth 2.0."""

from __future__ import annotations

import asyncio
import io
from pathlib import Path
from typing import TYPE_CHECKING

from . import ObjectStore, object_key

if TYPE_CHECKING:
    from ..models import ImageBlob


class GoogleDriveObjectStore(ObjectStore):
    """Upload images to Google Drive and share them by link.

    On first use, opens a browser for Google account authorization.
    The token is saved for subsequent use.
    """

    SCOPES = ["https://www.googleapis.com/auth/drive.file"]

    def __init__(
        self,
        credentials_path: str | Path = "~/.config/glutenpeek/gdrive_credentials.json",
        token_path: str | Path = "~/.config/glutenpeek/gdrive_token.json",
        folder_id: str = "",
    ) -> None:
        self._credentials_path = Path(credentials_path).expanduser()
        self._token_path = Path(token_path).expanduser()
        self._folder_id = folder_id
        self._service = None

    def _get_service(self):
        """Build and return the Drive API service, authenticating if needed."""
        if self._service is not None:
            return self._service

        try:
            from google.auth.transport.requests import Request
            from google.oauth2.credentials import Credentials
            from google_auth_oauthlib.flow import InstalledAppFlow
            from googleapiclient.discovery import build
        except ImportError:
            raise ImportError(
                "Google Drive storage requires extra packages:\n"
                "  pip install 'glutenpeek[gdrive]'"
            )

        creds = None

        if self._token_path.exists():
            creds = Credentials.from_authorized_user_file(
                str(self._token_path), self.SCOPES
            )

        if creds is None or not creds.valid:
            if creds and creds.expired and creds.refresh_token:
                creds.refresh(Request())
            else:
                if not self._credentials_path.exists():
                    raise FileNotFoundError(
                        f"OAuth credentials file not found: {self._credentials_path}\n"
                        f"Download it from the Google Cloud Console."
                    )
                flow = InstalledAppFlow.from_client_secrets_file(
                    str(self._credentials_path), self.SCOPES
                )
                creds = flow.run_local_server(port=0)

            self._token_path.parent.mkdir(parents=True, exist_ok=True)
            self._token_path.write_text(creds.to_json())

        self._service = build("drive", "v3", credentials=creds)
        return self._service

    def _upload_sync(self, blob: ImageBlob, key: str) -> str:
        from googleapiclient.http import MediaIoBaseUpload

        service = self._get_service()

        file_metadata: dict = {"name": key.replace("/", "_")}
        if self._folder_id:
            file_metadata["parents"] = [self._folder_id]

        media = MediaIoBaseUpload(
            io.BytesIO(blob.data),
            mimetype=blob.content_type,
            resumable=False,
        )
        result = (
            service.files()
            .create(body=file_metadata, media_body=media, fields="id")
            .execute()
        )
        file_id = result["id"]

        service.permissions().create(
            fileId=file_id,
            body={"type": "anyone", "role": "reader"},
        ).execute()

        return f"https://drive.google.com/uc?export=view&id={file_id}"

    async def upload(self, blob: ImageBlob, path_prefix: str) -> str:
        key = object_key(path_prefix, blob)
        return await asyncio.to_thread(self._upload_sync, blob, key)
