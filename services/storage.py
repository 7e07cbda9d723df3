# services/storage.py
"""
File storage for uploaded images and documents.

Uses Cloudinary's signed upload API when credentials are configured and
falls back to the local ``UPLOAD_FOLDER`` (served under ``/uploads``).
"""

import base64
import hashlib
import logging
import os
import time
import uuid
from typing import Iterable, Optional

import requests
from werkzeug.utils import secure_filename

from core.errors import IntegrationError

logger = logging.getLogger(__name__)


class StorageError(IntegrationError):
    pass


def to_data_url(data: bytes, mimetype: str) -> str:
    encoded = base64.b64encode(data).decode('ascii')
    return f"data:{mimetype};base64,{encoded}"


def cloudinary_signature(params: dict, api_secret: str) -> str:
    """SHA-1 over the sorted ``key=value`` pairs followed by the API secret"""
    payload = '&'.join(f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, ''))
    return hashlib.sha1(f"{payload}{api_secret}".encode('utf-8')).hexdigest()


class FileStorage:
    def __init__(self):
        self.cloud_name = None
        self.api_key = None
        self.api_secret = None
        self.root_folder = 'cbm'
        self.upload_folder = 'uploads'
        self.timeout = 60
        self.session = requests.Session()

    def init_app(self, app):
        self.cloud_name = app.config.get('CLOUDINARY_CLOUD_NAME')
        self.api_key = app.config.get('CLOUDINARY_API_KEY')
        self.api_secret = app.config.get('CLOUDINARY_API_SECRET')
        self.root_folder = app.config.get('CLOUDINARY_ROOT_FOLDER', 'cbm')
        self.upload_folder = app.config['UPLOAD_FOLDER']
        app.extensions['storage'] = self
        app.logger.info(f"File storage backend: {'cloudinary' if self.cloud_enabled else 'local'}")

    @property
    def cloud_enabled(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def upload(self, data: bytes, filename: str, mimetype: str,
               folder: str = 'misc',
               public_id: Optional[str] = None,
               resource_type: str = 'auto',
               tags: Iterable[str] = ()) -> str:
        """Store a file and return its public URL"""
        if self.cloud_enabled:
            return self._upload_cloudinary(data, filename, mimetype, folder, public_id, resource_type, tags)
        return self._save_local(data, filename, folder)

    def _upload_cloudinary(self, data, filename, mimetype, folder, public_id, resource_type, tags) -> str:
        params = {
            'folder': f"{self.root_folder}/{folder}".strip('/'),
            'public_id': public_id,
            'tags': ','.join(tags) if tags else None,
            'timestamp': int(time.time()),
        }
        params = {key: value for key, value in params.items() if value not in (None, '')}
        params['signature'] = cloudinary_signature(params, self.api_secret)
        params['api_key'] = self.api_key

        url = f"https://api.cloudinary.com/v1_1/{self.cloud_name}/{resource_type}/upload"
        try:
            response = self.session.post(
                url,
                data=params,
                files={'file': (filename, data, mimetype)},
                timeout=self.timeout
            )
            response.raise_for_status()
            secure_url = response.json()['secure_url']
        except requests.RequestException as e:
            raise StorageError(f"Cloudinary upload of '{filename}' failed: {e}") from e
        except (KeyError, ValueError) as e:
            raise StorageError(f"Unexpected Cloudinary response for '{filename}': {e}") from e

        logger.info(f"Uploaded {filename} to Cloudinary folder {params['folder']}")
        return secure_url

    def _save_local(self, data: bytes, filename: str, folder: str) -> str:
        safe_folder = secure_filename(folder) or 'misc'
        safe_name = secure_filename(filename) or 'file'
        stored_name = f"{uuid.uuid4().hex[:12]}-{safe_name}"
        directory = os.path.join(self.upload_folder, safe_folder)
        try:
            os.makedirs(directory, exist_ok=True)
            with open(os.path.join(directory, stored_name), 'wb') as handle:
                handle.write(data)
        except OSError as e:
            raise StorageError(f"Could not store '{filename}' locally: {e}") from e

        logger.info(f"Stored {filename} at {safe_folder}/{stored_name}")
        return f"/uploads/{safe_folder}/{stored_name}"


storage = FileStorage()
