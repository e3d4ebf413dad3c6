"""SecretDeliveryPort protocol — services depend on this, not the concrete gateway."""

from typing import Protocol


class SecretDeliveryPort(Protocol):
    async def send_passcode(self, phone: str, code: str) -> bool: ...
