"""Development SMS sender that logs instead of dispatching.

AppSettings rejects this provider when ENV=production.
"""

from shared.logging import get_logger
from shared.masking import mask_phone

log = get_logger(__name__)


class ConsoleSmsSender:
    async def send_passcode(self, phone: str, code: str) -> bool:
        # Fields named passcode are redacted, so the code goes in the event text.
        log.info(f"sms_mock_dispatch code {code}", phone=mask_phone(phone))
        return True
