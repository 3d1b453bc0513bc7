import os
from typing import List, Optional
from uuid import uuid4

from flask import current_app, request
from werkzeug.utils import secure_filename

from .errors import ValidationError

UPLOAD_URL_PREFIX = "/uploads/"


def allowed_image_extension(filename: str) -> bool:
    extension = os.path.splitext(filename)[1].lower().lstrip(".")
    if not extension:
        return False
    return extension in current_app.config["ALLOWED_IMAGE_EXTENSIONS"]


def collect_files(field_name: str):
    return [
        upload
        for upload in request.files.getlist(field_name)
        if upload and getattr(upload, "filename", "")
    ]


def save_image(image_file, folder: str) -> str:
    original_filename = secure_filename(image_file.filename or "")
    if not original_filename:
        raise ValidationError("Please choose a valid file name.")

    if not allowed_image_extension(original_filename):
        raise ValidationError(
            "Unsupported image format. Upload PNG, JPG, JPEG, GIF, or WEBP files."
        )

    target_directory = os.path.join(current_app.config["UPLOAD_FOLDER"], folder)
    os.makedirs(target_directory, exist_ok=True)

    extension = os.path.splitext(original_filename)[1].lower()
    unique_filename = f"{uuid4().hex}{extension}"
    image_file.save(os.path.join(target_directory, unique_filename))

    return f"{UPLOAD_URL_PREFIX}{folder}/{unique_filename}"


def save_images(image_files, folder: str) -> List[str]:
    saved_paths: List[str] = []
    for image_file in image_files:
        try:
            saved_paths.append(save_image(image_file, folder))
        except (ValidationError, OSError):
            remove_images(saved_paths)
            raise
    return saved_paths


def remove_images(paths) -> None:
    if not paths:
        return
    if isinstance(paths, str):
        paths = [paths]

    for path in paths:
        relative = _relative_upload_path(path)
        if not relative:
            continue
        target = os.path.join(current_app.config["UPLOAD_FOLDER"], relative)
        try:
            os.remove(target)
        except FileNotFoundError:
            continue
        except OSError as exc:
            current_app.logger.warning("Unable to remove upload %s: %s", target, exc)


def _relative_upload_path(path) -> Optional[str]:
    value = str(path or "").strip()
    if not value.startswith(UPLOAD_URL_PREFIX):
        return None
    relative = os.path.normpath(value[len(UPLOAD_URL_PREFIX):])
    if relative.startswith("..") or os.path.isabs(relative):
        return None
    return relative
