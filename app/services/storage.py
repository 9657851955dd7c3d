import logging
import secrets
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile

from app.core.config import get_settings
from app.core.errors import PayloadTooLarge

logger = logging.getLogger(__name__)

FILE_TYPE_EXTENSIONS = {
    "image": {"jpg", "jpeg", "png", "gif", "webp", "bmp", "svg"},
    "video": {"mp4", "webm", "ogg", "mov", "avi", "mkv"},
    "document": {"pdf", "doc", "docx", "ppt", "pptx", "xls", "xlsx", "txt", "rtf", "odt"},
}

STAGING_FOLDERS = {
    "image": "images",
    "video": "videos",
    "document": "documents",
    "other": "others",
}

SIZE_UNITS = ("B", "KB", "MB", "GB")


@dataclass(slots=True)
class StagedFile:
    path: Path
    original_name: str
    content_type: str
    size: int
    file_type: str

    @property
    def file_name(self) -> str:
        return self.path.name


def classify_file_type(filename: str) -> str:
    ext = Path(filename or "").suffix.lower().lstrip(".")
    for file_type, extensions in FILE_TYPE_EXTENSIONS.items():
        if ext in extensions:
            return file_type
    return "other"


def format_file_size(num_bytes: int) -> str:
    size = float(num_bytes)
    if size <= 0:
        return "0 B"
    unit = 0
    while size >= 1024 and unit < len(SIZE_UNITS) - 1:
        size /= 1024
        unit += 1
    return f"{size:.2f} {SIZE_UNITS[unit]}"


def ensure_upload_dir(file_type: str = "other") -> Path:
    settings = get_settings()
    root = Path(settings.upload_dir) / STAGING_FOLDERS.get(file_type, "others")
    root.mkdir(parents=True, exist_ok=True)
    return root


async def save_upload_file(file: UploadFile) -> StagedFile:
    settings = get_settings()
    original_name = Path(file.filename or "").name
    file_type = classify_file_type(original_name)
    ext = Path(original_name).suffix
    stamp = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}"
    final_path = ensure_upload_dir(file_type) / f"file-{stamp}{ext}"

    total = 0
    try:
        with final_path.open("wb") as handle:
            while True:
                chunk = await file.read(1024 * 1024)
                if not chunk:
                    break
                total += len(chunk)
                if total > settings.max_upload_size:
                    raise PayloadTooLarge()
                handle.write(chunk)
    except BaseException:
        delete_file_if_exists(final_path)
        raise
    finally:
        await file.close()

    return StagedFile(
        path=final_path,
        original_name=original_name,
        content_type=file.content_type or "application/octet-stream",
        size=total,
        file_type=file_type,
    )


def delete_file_if_exists(path: str | Path | None) -> None:
    if not path:
        return
    p = Path(path)
    if p.exists():
        p.unlink(missing_ok=True)
        logger.info("staged_file_removed", extra={"path": str(p)})


@contextmanager
def staged_file(staged: StagedFile) -> Iterator[StagedFile]:
    """Hold a staged upload for the duration of the block and always remove it afterwards."""
    try:
        yield staged
    finally:
        delete_file_if_exists(staged.path)
