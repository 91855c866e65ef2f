"""商品图片上传到对象存储；未配置存储时返回占位图 URL。"""

from __future__ import annotations
import logging, uuid, requests
from typing import Optional

from app.core.config import settings, secret_value
from app.core.errors import UpstreamError

logger = logging.getLogger(__name__)


def _object_name(filename: str) -> str:
    # 同名文件不覆盖：前面加随机前缀
    safe = (filename or "image").strip().replace("/", "_") or "image"
    return f"{uuid.uuid4().hex[:12]}_{safe}"


def upload_image(
    content: bytes,
    filename: str,
    content_type: str = "application/octet-stream",
    *,
    session: Optional[requests.Session] = None,
) -> str:
    """上传成功返回公开 URL。"""
    base_url = (settings.STORAGE_URL or "").rstrip("/")
    key = secret_value(settings.STORAGE_KEY)
    if not base_url or not key:
        logger.info("storage.not_configured using placeholder filename=%s", filename)
        return settings.PLACEHOLDER_IMAGE_URL

    name = _object_name(filename)
    bucket = settings.STORAGE_BUCKET
    url = f"{base_url}/storage/v1/object/{bucket}/{name}"
    http = session or requests

    try:
        resp = http.put(
            url,
            data=content,
            headers={"Authorization": f"Bearer {key}", "Content-Type": content_type},
            timeout=30,
        )
    except requests.RequestException as e:
        raise UpstreamError(f"image upload error: {type(e).__name__}") from e

    if not 200 <= resp.status_code < 300:
        raise UpstreamError(f"image upload failed: status={resp.status_code}", status=resp.status_code, body=resp.text)

    public_url = f"{base_url}/storage/v1/object/public/{bucket}/{name}"
    logger.info("storage.uploaded bucket=%s name=%s bytes=%s", bucket, name, len(content))
    return public_url
