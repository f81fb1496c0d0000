"""ZeptoMail implementation of EmailProvider.

Sends one-time codes through the ZeptoMail HTTP API. The httpx client is
created and closed by the application lifespan and injected here, together
with EmailSettings and the public app URL used in the template footer.
"""

import os
from typing import Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import EmailSettings
from shared.logging import get_logger

log = get_logger(__name__)

_ZEPTO_API_URL = "https://api.zeptomail.in/v1.1/email"
_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "emails",
)
_CODE_TEMPLATE = "verification_code.html"


class ZeptoMailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: httpx.AsyncClient,
        app_url: str = "https://reciperadar.app",
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._app_url = app_url
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def _auth_header(self) -> str:
        token = self._settings.zepto_api_token
        if not token.startswith("Zoho-enczapikey "):
            token = f"Zoho-enczapikey {token}"
        return token

    async def _send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
    ) -> bool:
        if not self._settings.zepto_api_token:
            log.error("email_send_failed", reason="token_not_configured")
            return False

        payload: dict = {
            "from": {
                "address": self._settings.zepto_from_email,
                "name": self._settings.zepto_from_name,
            },
            "to": [{"email_address": {"address": to_email, "name": to_email}}],
            "subject": subject,
            "htmlbody": html_body,
        }
        if text_body:
            payload["textbody"] = text_body

        headers = {
            "Authorization": self._auth_header(),
            "Content-Type": "application/json",
        }

        try:
            response = await self._http.post(
                _ZEPTO_API_URL,
                json=payload,
                headers=headers,
                timeout=self._settings.email_timeout_seconds,
            )
        except httpx.HTTPError as e:
            log.error(
                "email_send_error",
                to_email=to_email,
                subject=subject,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if response.status_code in (200, 201, 202):
            log.info("email_sent", to_email=to_email, subject=subject)
            return True
        log.error(
            "email_send_failed",
            to_email=to_email,
            subject=subject,
            status_code=response.status_code,
            response=response.text[:200],
        )
        return False

    async def send_code(
        self, destination: str, code: str, subject: str, preamble: str
    ) -> bool:
        template = self._jinja.get_template(_CODE_TEMPLATE)
        html_body = template.render(
            code=code,
            preamble=preamble,
            app_name=self._settings.zepto_from_name,
            app_url=self._app_url,
        )
        text_body = (
            f"{subject}\n\n"
            f"{preamble}\n\n"
            f"Your code is: {code}\n\n"
            f"This code expires in 10 minutes. If you did not request it, "
            f"you can ignore this email.\n\n"
            f"{self._app_url}"
        )
        return await self._send(destination, subject, html_body, text_body)
