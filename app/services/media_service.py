"""Upload client for the media service (group pictures)."""

import logging
from typing import Dict, Optional

import requests

log = logging.getLogger("whatsgroups.media")


class MediaClient:
    def __init__(self, base_url: str, token: str, timeout: float = 60.0) -> None:
        self._base_url = (base_url or "").rstrip("/")
        self._token = token
        self._timeout = timeout

    def upload(self, content: bytes, filename: str, content_type: str) -> Optional[Dict[str, str]]:
        """Returns {"url", "fullUrl"} on success, None on any failure."""
        try:
            response = requests.post(
                f"{self._base_url}/upload",
                files={"file": (filename, content, content_type)},
                headers={"Authorization": f"Bearer {self._token}"},
                timeout=self._timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.HTTPError as exc:
            log.error(
                "❌ Media upload failed: status=%s body=%s",
                exc.response.status_code if exc.response is not None else "?",
                exc.response.text[:200] if exc.response is not None else "",
            )
            return None
        except (requests.exceptions.RequestException, ValueError) as exc:
            log.error(f"❌ Media upload failed: {exc}")
            return None

        if data.get("success"):
            return {"url": data.get("url"), "fullUrl": data.get("fullUrl")}

        log.warning(f"⚠️ Media service rejected upload of {filename}: {data}")
        return None
