# app/core/storage_utils.py
import uuid

from app.core.config import get_settings
from app.core.supabase_client import supabase_admin

settings = get_settings()

MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5MB per image

ALLOWED_IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def upload_to_storage(path: str, file_bytes: bytes, content_type: str) -> str:
    """
    Upload raw bytes to Supabase Storage and return a public URL.

    If a file already exists at this path, it will be overwritten
    thanks to the 'upsert' option.

    Args:
        path: Full object path inside the bucket.
              Example: "products/<uuid>/gallery/<uuid>.png"
        file_bytes: File content in bytes.
        content_type: MIME type stored with the object.

    Raises:
        Any exception raised by Supabase client if upload fails.
    """
    bucket = supabase_admin().storage.from_(settings.STORAGE_BUCKET)
    bucket.upload(path, file_bytes, {"upsert": "true", "content-type": content_type})
    return bucket.get_public_url(path)


def delete_from_storage(path: str) -> None:
    """
    Delete a file from Supabase Storage by its object path (relative to bucket).
    """
    supabase_admin().storage.from_(settings.STORAGE_BUCKET).remove([path])


def extract_path_from_public_url(url: str) -> str | None:
    """
    Given a public URL, extract the object path relative to the bucket.

    Example:
        https://<proj>.supabase.co/storage/v1/object/public/media/brands/b/logo.png
        -> 'brands/b/logo.png'
    """
    marker = f"/storage/v1/object/public/{settings.STORAGE_BUCKET}/"
    idx = url.find(marker)
    if idx == -1:
        return None
    return url[idx + len(marker) :]


def delete_public_url(url: str) -> None:
    """
    Convenience helper: delete a file by its public URL.
    No-op if the URL does not belong to this bucket.
    """
    path = extract_path_from_public_url(url)
    if path:
        delete_from_storage(path)


def generate_filename(ext: str) -> str:
    """
    Generate a random filename like "<uuid4>.png".
    """
    return f"{uuid.uuid4()}.{ext}"
