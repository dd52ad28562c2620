"""Photo validation and storage for waste reports."""
import io
import os
import uuid
from typing import Dict, Tuple

from PIL import Image, UnidentifiedImageError
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

ALLOWED_IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "webp"}
PILLOW_FORMATS = {"JPEG": "jpg", "PNG": "png", "WEBP": "webp"}
DEFAULT_MAX_PHOTO_BYTES = 5 * 1024 * 1024  # 5 MiB
TOO_LARGE_TITLE = "File too large"
TOO_LARGE_MESSAGE = "Please select a photo under 5MB"


class PhotoValidationError(ValueError):
    """Raised when an uploaded photo is rejected before anything is stored."""

    def __init__(self, message: str, title: str = "Photo rejected") -> None:
        super().__init__(message)
        self.title = title


def _fail_if(condition: bool, message: str, title: str = "Photo rejected") -> None:
    if condition:
        raise PhotoValidationError(message, title=title)


def photo_size_allowed(size: int, max_bytes: int = DEFAULT_MAX_PHOTO_BYTES) -> bool:
    return 0 < size <= max_bytes


def stream_size(file: FileStorage) -> int:
    file.stream.seek(0, os.SEEK_END)
    size = file.stream.tell()
    file.stream.seek(0)
    return size


def validate_image_file(file: FileStorage, max_bytes: int = DEFAULT_MAX_PHOTO_BYTES) -> Tuple[bytes, str]:
    _fail_if(not file, "No file provided")
    filename = secure_filename(file.filename or "")
    _fail_if(not filename or "." not in filename, "Unsupported file name")
    ext = filename.rsplit(".", 1)[1].lower()
    _fail_if(ext not in ALLOWED_IMAGE_EXTENSIONS, "File type not allowed")

    size = stream_size(file)
    _fail_if(size == 0, "Empty file")
    _fail_if(not photo_size_allowed(size, max_bytes), TOO_LARGE_MESSAGE, title=TOO_LARGE_TITLE)

    content = file.read()
    _fail_if(len(content) > max_bytes, TOO_LARGE_MESSAGE, title=TOO_LARGE_TITLE)
    try:
        with Image.open(io.BytesIO(content)) as img:
            detected = PILLOW_FORMATS.get(img.format or "")
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise PhotoValidationError("Invalid image data") from exc
    _fail_if(detected is None, "Invalid image data")

    file.stream.seek(0)
    return content, ext


def save_image_bytes(image_bytes: bytes, upload_dir: str, owner_id: str, extension: str) -> Tuple[str, str]:
    """Write under ``<upload_dir>/<owner_id>/`` and return (absolute path, relative url)."""
    owner_dir = secure_filename(owner_id) or "anonymous"
    target_dir = os.path.join(upload_dir, owner_dir)
    os.makedirs(target_dir, exist_ok=True)
    safe_name = secure_filename(f"{uuid.uuid4().hex}.{extension}")
    path = os.path.join(target_dir, safe_name)
    with open(path, "wb") as f:
        f.write(image_bytes)
    return path, f"{owner_dir}/{safe_name}"


def persist_report_photo(image_bytes: bytes, extension: str, upload_dir: str, owner_id: str) -> Dict:
    stored_path, relative_url = save_image_bytes(image_bytes, upload_dir, owner_id, extension)
    return {"path": stored_path, "photo_url": relative_url, "extension": extension}
