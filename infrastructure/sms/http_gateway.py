"""HTTP SMS gateway implementation of SecretDeliveryPort.

POSTs a JSON message to a configured provider endpoint. Any non-2xx status or
transport error is logged and reported as ``False``; the caller decides how to
surface a failed delivery.
"""

import httpx

from config import SmsSettings
from infrastructure.http_client import HttpClient
from shared.logging import get_logger
from shared.masking import mask_phone

log = get_logger(__name__)

_PASSCODE_TEMPLATE = (
    "{sender}: your verification code is {code}. It expires in 10 minutes. "
    "Never share it."
)


class HttpSmsGateway:
    def __init__(self, settings: SmsSettings, http_client: HttpClient) -> None:
        self._settings = settings
        self._http = http_client

    async def send_passcode(self, phone: str, code: str) -> bool:
        if not self._settings.sms_gateway_url:
            log.error("sms_send_failed", reason="gateway_not_configured")
            return False

        payload = {
            "to": phone,
            "sender": self._settings.sms_sender_id,
            "message": _PASSCODE_TEMPLATE.format(
                sender=self._settings.sms_sender_id, code=code
            ),
        }
        headers = {"Authorization": f"Bearer {self._settings.sms_api_key}"}

        try:
            response = await self._http.post(
                self._settings.sms_gateway_url, json=payload, headers=headers
            )
        except httpx.HTTPError as e:
            log.error(
                "sms_send_error",
                phone=mask_phone(phone),
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if 200 <= response.status_code < 300:
            log.info("sms_sent_success", phone=mask_phone(phone))
            return True
        log.error(
            "sms_send_failed",
            phone=mask_phone(phone),
            status_code=response.status_code,
            response=response.text[:200],
        )
        return False
