"""Delivery of the digest to the messaging template endpoint.

The messaging template takes a fixed list of positional parameters:
date, point1..point8, link1..link8. The digest is handed off as a single
JSON POST:

    {
        "template": "edtech_digest",
        "parameters": ["2026-10-18", "point 1", ..., "https://...", ...]
    }

Delivery fails gracefully: errors are logged and reported through the
return value, never raised, so the stored message can be marked failed.
"""

import asyncio
import logging

import aiohttp

from models.digest import TemplateRecord

logger = logging.getLogger(__name__)


def build_payload(record: TemplateRecord, template_name: str) -> dict:
    """Build the JSON body for the template endpoint."""
    return {
        "template": template_name,
        "parameters": record.positional_fields(),
    }


async def send_template_message(
    record: TemplateRecord,
    webhook_url: str,
    template_name: str,
    session: aiohttp.ClientSession | None = None,
) -> bool:
    """POST the template record to the messaging endpoint.

    Args:
        record: Projected digest
        webhook_url: Template endpoint (empty disables delivery)
        template_name: Template identifier
        session: Optional HTTP session (a short-lived one is created if None)

    Returns:
        True if delivered or delivery is not configured
    """
    if not webhook_url:
        logger.debug("Template delivery not configured, skipping")
        return True

    payload = build_payload(record, template_name)
    timeout = aiohttp.ClientTimeout(total=10)

    try:
        if session is None:
            async with aiohttp.ClientSession() as own_session:
                return await _post(own_session, webhook_url, payload, timeout)
        return await _post(session, webhook_url, payload, timeout)
    except asyncio.TimeoutError:
        logger.warning("Template delivery timeout | url=%s", webhook_url[:50])
        return False
    except aiohttp.ClientError as e:
        logger.error("Template delivery error: %s (%s)", e, type(e).__name__, exc_info=True)
        return False


async def _post(
    session: aiohttp.ClientSession,
    url: str,
    payload: dict,
    timeout: aiohttp.ClientTimeout,
) -> bool:
    async with session.post(url, json=payload, timeout=timeout) as resp:
        if resp.status < 300:
            logger.info("Template message sent | template=%s date=%s", payload["template"], payload["parameters"][0])
            return True
        logger.warning("Template delivery failed | status=%d url=%s", resp.status, url[:50])
        return False
