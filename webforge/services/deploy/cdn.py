"""
CDN Service

Uploads build output and builds public URLs for it.

NOTE: No provider SDK is called. Uploads and invalidations are logged
and recorded in memory, which is enough for the deployer and for tests.
Swap in a real client behind the same methods.
"""
import mimetypes
import uuid
from pathlib import Path
from typing import Dict, List, Optional

from webforge.config import get_settings
from webforge.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def content_type_for(path: str) -> str:
    content_type, _ = mimetypes.guess_type(path)
    return content_type or DEFAULT_CONTENT_TYPE


class CDNService:
    def __init__(
        self,
        provider: str = "aws",
        bucket_name: Optional[str] = None,
        region: Optional[str] = None,
        custom_domain: Optional[str] = None,
    ):
        self.provider = provider
        self.bucket_name = bucket_name
        self.region = region
        self.custom_domain = custom_domain
        self.objects: Dict[str, Dict] = {}
        self.invalidations: List[Dict] = []

    def upload(self, local_path: str, remote_prefix: str = "") -> List[Dict]:
        """
        Upload a file or a directory tree.

        Returns one {"key", "content_type", "size"} entry per file.
        Raises FileNotFoundError if local_path doesn't exist.
        """
        path = Path(local_path)
        if not path.exists():
            raise FileNotFoundError(f"Upload source not found: {local_path}")

        prefix = remote_prefix.strip("/")
        if path.is_dir():
            uploaded = [
                self._upload_file(file, self._join(prefix, file.relative_to(path).as_posix()))
                for file in sorted(path.rglob("*"))
                if file.is_file()
            ]
        else:
            uploaded = [self._upload_file(path, self._join(prefix, path.name))]

        logger.info(f"Uploaded {len(uploaded)} files to {self.bucket_name}/{prefix}")
        return uploaded

    def _upload_file(self, file: Path, key: str) -> Dict:
        entry = {
            "key": key,
            "content_type": content_type_for(file.name),
            "size": file.stat().st_size,
        }
        self.objects[key] = entry
        logger.debug(f"Uploaded {file} to {self.bucket_name}/{key} ({entry['content_type']})")
        return entry

    @staticmethod
    def _join(prefix: str, name: str) -> str:
        return f"{prefix}/{name}" if prefix else name

    def invalidate_cache(self, paths: List[str]) -> Optional[Dict]:
        if not paths:
            logger.warning("No paths provided for cache invalidation.")
            return None
        invalidation = {
            "id": str(uuid.uuid4()),
            "paths": [p if p.startswith("/") else f"/{p}" for p in paths],
        }
        self.invalidations.append(invalidation)
        logger.info(f"Invalidated CDN paths: {invalidation['paths']}")
        return invalidation

    def get_cdn_url(self, remote_path: str) -> str:
        remote_path = remote_path.lstrip("/")
        if self.provider == "aws" and self.region and self.bucket_name:
            return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{remote_path}"
        if self.custom_domain:
            return f"https://{self.custom_domain}/{remote_path}"
        logger.warning("Cannot determine CDN URL structure. Returning relative path.")
        return f"/{remote_path}"


_cdn: Optional[CDNService] = None


def get_cdn() -> CDNService:
    global _cdn
    if _cdn is None:
        settings = get_settings()
        _cdn = CDNService(
            provider=settings.CDN_PROVIDER,
            bucket_name=settings.CDN_BUCKET_NAME,
            region=settings.CDN_REGION,
            custom_domain=settings.CDN_CUSTOM_DOMAIN,
        )
    return _cdn
