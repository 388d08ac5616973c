"""SMS sending via the Twilio REST API.

Simple form-encoded HTTP POST to Twilio's Messages resource with basic
auth. No SDK, no retries: a failed send surfaces as SmsDeliveryError.
"""

import logging

import httpx

from app.core.config import settings
from app.core.errors import SmsDeliveryError
from app.core.phone import mask_phone_number

logger = logging.getLogger(__name__)

_TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
_TWILIO_TIMEOUT = 10.0

# Twilio rejects bodies longer than this
_MAX_BODY_LENGTH = 1600

VERIFICATION_MESSAGE_TEMPLATE = (
    "Your Dumplin verification code is: {code}. This code expires in 10 minutes."
)


def _messages_url(account_sid: str) -> str:
    return f"{_TWILIO_API_BASE}/Accounts/{account_sid}/Messages.json"


async def send_sms(*, to: str, body: str) -> str:
    """Send a text message through Twilio.

    Args:
        to: Recipient in E.164 form (e.g., ``+15551234567``).
        body: Message text. Truncated to Twilio's 1600-character limit.

    Returns:
        Twilio message SID.

    Raises:
        SmsDeliveryError: If Twilio is unreachable or rejects the request.
    """
    account_sid = settings.twilio_account_sid
    if len(body) > _MAX_BODY_LENGTH:
        body = body[: _MAX_BODY_LENGTH - 3] + "..."

    try:
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                _messages_url(account_sid),
                auth=(account_sid, settings.twilio_auth_token.get_secret_value()),
                data={
                    "To": to,
                    "From": settings.twilio_phone_number,
                    "Body": body,
                },
                timeout=_TWILIO_TIMEOUT,
            )
            resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        logger.error(
            "Twilio rejected SMS to %s: status=%s body=%s",
            mask_phone_number(to),
            exc.response.status_code,
            exc.response.text[:500],
        )
        raise SmsDeliveryError() from exc
    except httpx.HTTPError as exc:
        logger.error(
            "Twilio request failed for %s", mask_phone_number(to), exc_info=True
        )
        raise SmsDeliveryError() from exc

    sid = str(resp.json().get("sid", ""))
    logger.info("SMS sent to %s: sid=%s", mask_phone_number(to), sid)
    return sid


async def send_verification_sms(*, to: str, code: str) -> str:
    """Send a verification code message.

    Args:
        to: Recipient in E.164 form.
        code: Verification code to deliver.

    Returns:
        Twilio message SID.

    Raises:
        SmsDeliveryError: If the send fails.
    """
    return await send_sms(to=to, body=VERIFICATION_MESSAGE_TEMPLATE.format(code=code))
