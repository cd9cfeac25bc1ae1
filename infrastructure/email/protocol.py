"""EmailSender protocol — services depend on this, not the concrete implementation."""

from typing import Any, Optional, Protocol


class EmailDeliveryError(Exception):
    """The email provider did not accept the message."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EmailSender(Protocol):
    async def send(
        self,
        to_address: str,
        subject: str,
        text_body: str,
        template_name: str,
        template_data: dict[str, Any],
    ) -> None:
        """Deliver one message; raises :class:`EmailDeliveryError` on failure."""
        ...
