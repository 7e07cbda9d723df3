# middleware/upload.py
"""
Request body helpers for endpoints that accept either JSON or multipart
form data, and validation of uploaded files.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from flask import current_app, request
from werkzeug.datastructures import FileStorage

from core.errors import ValidationError
from services.email import Attachment

logger = logging.getLogger(__name__)


def request_payload() -> Dict[str, Any]:
    """JSON body, or the form fields of a multipart request"""
    if request.is_json:
        payload = request.get_json(silent=True)
        if payload is None:
            raise ValidationError('Request body must be valid JSON')
        if not isinstance(payload, dict):
            raise ValidationError('Request body must be a JSON object')
        return payload
    return request.form.to_dict()


def parse_list_field(value: Any, name: str) -> List[Any]:
    """
    Lists arrive as JSON arrays, as JSON-encoded strings from multipart
    forms, or as comma-separated strings. Unparseable values become [].
    """
    if value is None or value == '':
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.startswith('['):
            try:
                parsed = json.loads(text)
            except ValueError:
                logger.warning(f"Failed to parse {name} JSON, using an empty list")
                return []
            return parsed if isinstance(parsed, list) else []
        return [item.strip() for item in text.split(',') if item.strip()]
    return [value]


def _read(file: FileStorage, allowed_types: Iterable[str], max_bytes: int,
          type_message: str, size_message: str) -> Attachment:
    mimetype = (file.mimetype or '').lower()
    if mimetype not in allowed_types:
        raise ValidationError(type_message)
    data = file.read()
    if len(data) > max_bytes:
        raise ValidationError(size_message)
    return Attachment(filename=file.filename or 'upload', mimetype=mimetype, data=data)


def _present(file: Optional[FileStorage]) -> bool:
    return file is not None and bool(file.filename)


def image_file(field: str) -> Optional[Attachment]:
    """Optional single image upload"""
    file = request.files.get(field)
    if not _present(file):
        return None
    max_bytes = current_app.config['MAX_FILE_SIZE_BYTES']
    return _read(file, current_app.config['IMAGE_MIME_TYPES'], max_bytes,
                 'Only image uploads are allowed',
                 f"File too large, max {max_bytes // (1024 * 1024)}MB")


def image_files(field: str, max_count: int) -> List[Attachment]:
    files = [file for file in request.files.getlist(field) if _present(file)]
    if len(files) > max_count:
        raise ValidationError(f"At most {max_count} images can be uploaded")
    max_bytes = current_app.config['MAX_FILE_SIZE_BYTES']
    return [
        _read(file, current_app.config['IMAGE_MIME_TYPES'], max_bytes,
              'Only image uploads are allowed',
              f"File too large, max {max_bytes // (1024 * 1024)}MB")
        for file in files
    ]


def pdf_file(field: str) -> Optional[Attachment]:
    file = request.files.get(field)
    if not _present(file):
        return None
    max_bytes = current_app.config['MAX_FILE_SIZE_BYTES']
    return _read(file, {'application/pdf'}, max_bytes,
                 'Only PDF files are allowed',
                 f"File too large, max {max_bytes // (1024 * 1024)}MB")


def resume_file(field: str = 'resume') -> Attachment:
    file = request.files.get(field)
    if not _present(file):
        raise ValidationError('Resume/CV file is required')
    return _read(file, current_app.config['RESUME_MIME_TYPES'], current_app.config['RESUME_MAX_BYTES'],
                 'Invalid file type. Please upload PDF, DOC, or DOCX files only.',
                 'File size must be less than 5MB')


def verification_documents(field: str = 'documents') -> List[Attachment]:
    files = [file for file in request.files.getlist(field) if _present(file)]
    max_files = current_app.config['VERIFY_DOC_MAX_FILES']
    if not files:
        raise ValidationError('Please attach at least one document for verification.')
    if len(files) > max_files:
        raise ValidationError(f"At most {max_files} documents can be attached.")
    return [
        _read(file, current_app.config['VERIFY_DOC_MIME_TYPES'], current_app.config['VERIFY_DOC_MAX_BYTES'],
              'Only PDF, DOC/DOCX, PNG, or JPG files are allowed.',
              'Each file must be under 10MB.')
        for file in files
    ]
