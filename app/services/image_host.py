import logging

import httpx

from app.core.config import Settings
from app.core.errors import UpstreamRejected, UpstreamUnavailable
from app.services.storage import StagedFile

logger = logging.getLogger(__name__)


class ImageHostClient:
    """Forwards staged files to the external image host and returns the public URL."""

    def __init__(
        self,
        endpoint: str,
        *,
        field_name: str = "image",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.field_name = field_name
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImageHostClient":
        return cls(
            settings.image_host_url,
            field_name=settings.image_host_field,
            timeout=settings.image_host_timeout,
        )

    async def upload(self, staged: StagedFile) -> str:
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                with staged.path.open("rb") as handle:
                    response = await client.post(
                        self.endpoint,
                        files={self.field_name: (staged.original_name, handle, staged.content_type)},
                    )
        except httpx.HTTPError as exc:
            logger.warning("upstream_unavailable", extra={"endpoint": self.endpoint, "error": str(exc)})
            raise UpstreamUnavailable() from exc

        if not response.is_success:
            logger.warning(
                "upstream_rejected",
                extra={"endpoint": self.endpoint, "status_code": response.status_code},
            )
            raise UpstreamRejected(f"Image host rejected the upload ({response.status_code})")

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamRejected("Image host returned an unreadable response") from exc

        url = None
        if isinstance(payload, dict):
            url = payload.get("image_url") or payload.get("image")
        if not url:
            raise UpstreamRejected("Image host response did not include a URL")
        return str(url)
