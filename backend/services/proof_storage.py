"""
Payment proof storage.

Proof uploads are written to PROOF_STORAGE_DIR under a random name and
referenced by URL (PROOF_URL_PREFIX/<name>). Pushing proofs to an external
object store is outside this service.
"""
import logging
import mimetypes
import os
import secrets

from config import settings
from domain.constants import PROOF_CONTENT_TYPES
from domain.errors import ValidationError
from services.async_executor import run_blocking

logger = logging.getLogger(__name__)


def validate_proof(data: bytes, content_type: str | None) -> None:
    if not data:
        raise ValidationError("Proof file is empty", field="image")
    if len(data) > settings.max_proof_bytes:
        raise ValidationError(
            f"Proof must be under {settings.max_proof_bytes // (1024 * 1024)} MB",
            field="image",
        )
    if content_type and content_type not in PROOF_CONTENT_TYPES:
        raise ValidationError(f"Unsupported content type: {content_type}", field="image")


def _write_file(directory: str, filename: str, data: bytes) -> str:
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, filename)
    with open(path, "wb") as fh:
        fh.write(data)
    return path


async def save_proof(
    *,
    payment_id: int,
    data: bytes,
    content_type: str | None = None,
    original_filename: str | None = None,
) -> str:
    """Persist proof bytes and return the URL to store on the payment."""
    validate_proof(data, content_type)

    ext = ""
    if original_filename and "." in original_filename:
        ext = "." + original_filename.rsplit(".", 1)[1].lower()[:8]
    elif content_type:
        ext = mimetypes.guess_extension(content_type) or ""

    filename = f"payment-{payment_id}-{secrets.token_hex(8)}{ext}"
    path = await run_blocking(_write_file, settings.proof_storage_dir, filename, data)
    logger.info(f"Stored proof for payment {payment_id} at {path} ({len(data)} bytes)")
    return f"{settings.proof_url_prefix.rstrip('/')}/{filename}"


def _remove_file(path: str) -> bool:
    if not os.path.exists(path):
        return False
    os.remove(path)
    return True


async def discard_proof(proof_url: str) -> None:
    """Delete a stored proof by its URL; used when the upload's transaction fails."""
    filename = proof_url.rsplit("/", 1)[-1]
    path = os.path.join(settings.proof_storage_dir, filename)
    if await run_blocking(_remove_file, path):
        logger.info(f"Discarded orphaned proof {path}")
