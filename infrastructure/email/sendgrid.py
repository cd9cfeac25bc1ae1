"""SendGrid implementation of EmailSender.

- async httpx via HttpClient against the v3 mail/send endpoint
- injected EmailSettings
- HTML body rendered with Jinja2 from templates/emails/<template_name>.html
"""

import os
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from config import EmailSettings
from infrastructure.email.protocol import EmailDeliveryError
from infrastructure.http_client import HttpClient
from shared.logging import get_logger

log = get_logger(__name__)

_SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"
_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "emails",
)


class SendGridEmailSender:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: HttpClient,
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def _render(self, template_name: str, template_data: dict[str, Any]) -> str:
        try:
            template = self._jinja.get_template(f"{template_name}.html")
        except TemplateNotFound as exc:
            raise EmailDeliveryError(f"Unknown email template {template_name!r}") from exc
        return template.render(**template_data)

    async def send(
        self,
        to_address: str,
        subject: str,
        text_body: str,
        template_name: str,
        template_data: dict[str, Any],
    ) -> None:
        if not self._settings.email_enabled:
            log.info("email_skipped", to_email=to_address, reason="email_disabled")
            return
        if not self._settings.sendgrid_api_key or not self._settings.email_from:
            log.error("email_send_failed", to_email=to_address, reason="not_configured")
            raise EmailDeliveryError("Email sender is not configured")

        payload = {
            "personalizations": [{"to": [{"email": to_address}]}],
            "from": {
                "email": self._settings.email_from,
                "name": self._settings.email_from_name,
            },
            "subject": subject,
            "content": [
                {"type": "text/plain", "value": text_body},
                {"type": "text/html", "value": self._render(template_name, template_data)},
            ],
        }
        headers = {
            "Authorization": f"Bearer {self._settings.sendgrid_api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = await self._http.post(_SENDGRID_API_URL, json=payload, headers=headers)
        except Exception as e:
            log.error(
                "email_send_error",
                to_email=to_address,
                subject=subject,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise EmailDeliveryError(f"Email provider unreachable: {e}") from e

        if response.status_code not in (200, 201, 202):
            log.error(
                "email_send_failed",
                to_email=to_address,
                subject=subject,
                status_code=response.status_code,
                response=response.text[:200],
            )
            raise EmailDeliveryError(
                f"Email provider rejected the message ({response.status_code})",
                status_code=response.status_code,
            )

        log.info("email_sent_success", to_email=to_address, template=template_name)
