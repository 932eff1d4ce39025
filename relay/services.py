import json
import logging
from typing import Any, Dict, Optional

import requests

from .constants import CONTENT_TYPE, DEFAULT_FEISHU_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class MissingBotIdentifier(ValueError):
    pass


class DeliveryError(RuntimeError):
    pass


def resolve_destination_url(base: str, bot_id: Optional[str], default_bot_id: str = "") -> str:
    bot = bot_id or default_bot_id
    if not bot:
        raise MissingBotIdentifier("no bot identifier in the request path and no default configured")
    return f"{base}/{bot}"


def _log_feishu_reply(status_code: int, body: str) -> None:
    if not 200 <= status_code < 300:
        logger.warning(f"Feishu webhook answered HTTP {status_code}: {body}")
        return
    # Feishu reports bot errors (bad signature, rate limit...) as HTTP 200 with a non-zero code
    try:
        reply = json.loads(body) if body else {}
    except ValueError:
        reply = {}
    code = reply.get("code", reply.get("StatusCode", 0)) if isinstance(reply, dict) else 0
    if code:
        logger.warning(f"Feishu webhook rejected the card (code={code}): {reply.get('msg') or body}")
    else:
        logger.debug(f"Response body: {body}")


def send_card(
    url: str,
    card: Dict[str, Any],
    timeout: float = DEFAULT_FEISHU_TIMEOUT_SECONDS,
    session: Optional[requests.Session] = None,
) -> int:
    """
    POST one card to the Feishu webhook and return the HTTP status.

    Transport failures raise DeliveryError. Non-2xx answers are logged only:
    delivery was attempted and the caller still gets a success.
    """
    payload = json.dumps(card, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    logger.debug(f"Feishu card JSON: {payload.decode('utf-8')}")

    http = session or requests
    try:
        resp = http.post(url, data=payload, headers={"Content-Type": CONTENT_TYPE}, timeout=timeout)
    except requests.RequestException as exc:
        logger.error(f"Failed to deliver card: {exc}")
        raise DeliveryError(f"failed to deliver card: {exc}") from exc

    with resp:
        try:
            body = resp.text
        except requests.RequestException as exc:
            raise DeliveryError(f"failed to read webhook response: {exc}") from exc
        _log_feishu_reply(resp.status_code, body)
        return resp.status_code
