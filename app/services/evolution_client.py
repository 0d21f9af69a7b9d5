"""Evolution API client - every WhatsApp protocol action goes through here."""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from app.core.errors import EvolutionAPIError

log = logging.getLogger("whatsgroups.evolution")


def _q(value: str) -> str:
    return quote(value or "", safe="")


class EvolutionClient:
    """Thin wrapper over the Evolution HTTP API."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 30.0, session: Optional[requests.Session] = None) -> None:
        self._base_url = (base_url or "").rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._session = session or requests.Session()

    def request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        """
        Perform one call and return the parsed JSON body (raw text if it isn't JSON).

        Raises EvolutionAPIError on transport failures and non-2xx responses.
        """
        if not self._api_key:
            raise EvolutionAPIError("EVOLUTION_API_KEY is not configured", path=path)

        url = f"{self._base_url}{path}"
        headers = {"apikey": self._api_key}
        if body is not None:
            headers["Content-Type"] = "application/json"

        log.debug("Evolution → %s %s", method, path)
        try:
            response = self._session.request(method, url, headers=headers, json=body, timeout=self._timeout)
        except requests.exceptions.Timeout as exc:
            raise EvolutionAPIError("Timeout calling Evolution API", path=path) from exc
        except requests.exceptions.RequestException as exc:
            raise EvolutionAPIError(f"Evolution API request failed: {exc}", path=path) from exc

        raw = response.text
        if not response.ok:
            log.warning("Evolution → %s %s status=%s body=%s", method, path, response.status_code, raw[:200])
            raise EvolutionAPIError(
                f"HTTP {response.status_code} {response.reason}\nPATH: {path}\nRESPONSE: {raw}",
                status_code=response.status_code,
                path=path,
                body=raw,
            )

        if not raw:
            return {}
        try:
            return response.json()
        except ValueError:
            return raw

    # ────────────────────────────────────────────
    # Groups
    # ────────────────────────────────────────────

    def fetch_all_groups(self, instance_name: str) -> Any:
        return self.request("GET", f"/group/fetchAllGroups/{_q(instance_name)}?getParticipants=true")

    def fetch_group_info(self, instance_name: str, group_jid: str) -> Any:
        return self.request("GET", f"/group/fetchGroupInfo/{_q(instance_name)}?groupJid={_q(group_jid)}")

    def leave_group(self, instance_name: str, group_jid: str) -> Any:
        return self.request("DELETE", f"/group/leaveGroup/{_q(instance_name)}", {"groupJid": group_jid})

    def create_group(self, instance_name: str, subject: str, description: str, participants: List[str]) -> Any:
        return self.request(
            "POST",
            f"/group/create/{_q(instance_name)}",
            {"subject": subject, "description": description, "participants": participants},
        )

    def update_group_picture(self, instance_name: str, group_jid: str, image_url: str) -> Any:
        return self.request(
            "POST",
            f"/group/updateGroupPicture/{_q(instance_name)}?groupJid={_q(group_jid)}",
            {"image": image_url},
        )

    def update_group_subject(self, instance_name: str, group_jid: str, subject: str) -> Any:
        return self.request(
            "POST",
            f"/group/updateGroupSubject/{_q(instance_name)}?groupJid={_q(group_jid)}",
            {"subject": subject},
        )

    def update_group_description(self, instance_name: str, group_jid: str, description: str) -> Any:
        return self.request(
            "POST",
            f"/group/updateGroupDescription/{_q(instance_name)}?groupJid={_q(group_jid)}",
            {"description": description},
        )

    def update_group_setting(self, instance_name: str, group_jid: str, action: str) -> Any:
        return self.request(
            "POST",
            f"/group/updateSetting/{_q(instance_name)}?groupJid={_q(group_jid)}",
            {"action": action},
        )

    def fetch_participants(self, instance_name: str, group_jid: str) -> Any:
        return self.request("GET", f"/group/participants/{_q(instance_name)}?groupJid={_q(group_jid)}")

    def fetch_invite_code(self, instance_name: str, group_jid: str) -> Any:
        return self.request("GET", f"/group/inviteCode/{_q(instance_name)}?groupJid={_q(group_jid)}")

    # ────────────────────────────────────────────
    # Messages / numbers
    # ────────────────────────────────────────────

    def send_text(self, instance_name: str, number: str, text: str, mentions_everyone: bool = False) -> Any:
        if not number or not text:
            raise ValueError("number and text are required")
        payload: Dict[str, Any] = {"number": number, "text": text}
        if mentions_everyone:
            payload["mentionsEveryOne"] = True
        log.info("Evolution → sending text to %s via %s", number, instance_name)
        return self.request("POST", f"/message/sendText/{_q(instance_name)}", payload)

    def check_numbers(self, instance_name: str, numbers: List[str], endpoint: str = "/chat/whatsappNumbers") -> Any:
        return self.request("POST", f"{endpoint}/{_q(instance_name)}", {"numbers": numbers})


__all__ = ["EvolutionClient"]
