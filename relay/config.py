import logging
import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from .constants import (
    BOT_UUID_LENGTH,
    DEFAULT_ANALYSIS_LANGUAGE,
    DEFAULT_FEISHU_TIMEOUT_SECONDS,
    DEFAULT_HOST,
    DEFAULT_MODEL_NAME,
    DEFAULT_OPENAI_TIMEOUT_SECONDS,
    DEFAULT_PORT,
    DEFAULT_WEBHOOK_BASE,
    FAILURE_POLICIES,
    MODE_GROUPED,
    POLICY_DIAGNOSTIC,
    PROCESSING_MODES,
)

logger = logging.getLogger(__name__)

_BOT_UUID_RE = re.compile(r"^(?P<base>.*?)/(?P<uuid>[-a-z0-9]{%d})/?$" % BOT_UUID_LENGTH)


class ConfigError(ValueError):
    pass


def _to_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _to_float(name: str, value: Optional[str], default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        parsed = float(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc
    if parsed <= 0:
        raise ConfigError(f"{name} must be positive, got {value!r}")
    return parsed


def _choice(name: str, value: Optional[str], choices, default: str) -> str:
    normalized = (value or "").strip().lower() or default
    if normalized not in choices:
        raise ConfigError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return normalized


def split_webhook_url(url: str) -> Tuple[str, str]:
    """
    Split a full Feishu webhook URL into (base, bot_uuid).

    The bot UUID is only recognised as a trailing 36 character segment; any
    other URL is returned whole as the base with an empty UUID.
    """
    url = url.strip()
    match = _BOT_UUID_RE.match(url)
    if match:
        return match.group("base").rstrip("/"), match.group("uuid")
    return url.rstrip("/"), ""


def parse_basic_auth(value: Optional[str]) -> Optional[Tuple[str, str]]:
    if not value:
        return None
    if ":" not in value:
        raise ConfigError("WEBHOOK_AUTH must use the form username:password")
    username, password = value.split(":", 1)
    return username, password


@dataclass(frozen=True)
class RelayConfig:
    webhook_base: str = DEFAULT_WEBHOOK_BASE
    default_bot_id: str = ""
    basic_auth: Optional[Tuple[str, str]] = None
    openai_api_key: str = ""
    openai_base_url: Optional[str] = None
    openai_model: str = DEFAULT_MODEL_NAME
    openai_timeout: float = DEFAULT_OPENAI_TIMEOUT_SECONDS
    analysis_language: str = DEFAULT_ANALYSIS_LANGUAGE
    processing_mode: str = MODE_GROUPED
    enrichment_failure_policy: str = POLICY_DIAGNOSTIC
    feishu_timeout: float = DEFAULT_FEISHU_TIMEOUT_SECONDS
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    debug: bool = False

    @property
    def enrichment_enabled(self) -> bool:
        return bool(self.openai_api_key)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RelayConfig":
        env = os.environ if environ is None else environ

        configured_webhook = env.get("FEISHU_WEBHOOK", "").strip()
        if configured_webhook:
            webhook_base, default_bot_id = split_webhook_url(configured_webhook)
        else:
            webhook_base = env.get("FEISHU_WEBHOOK_BASE", "").strip().rstrip("/") or DEFAULT_WEBHOOK_BASE
            default_bot_id = env.get("FEISHU_WEBHOOK_UUID", "").strip()
        if not default_bot_id:
            logger.warning("Default bot UUID not provided; requests must carry it in the path")

        basic_auth = parse_basic_auth(env.get("WEBHOOK_AUTH"))
        if basic_auth:
            logger.info("Enabling basic auth")

        port_raw = env.get("APP_PORT", "").strip()
        try:
            port = int(port_raw) if port_raw else DEFAULT_PORT
        except ValueError as exc:
            raise ConfigError(f"APP_PORT must be an integer, got {port_raw!r}") from exc

        return cls(
            webhook_base=webhook_base,
            default_bot_id=default_bot_id,
            basic_auth=basic_auth,
            openai_api_key=env.get("OPENAI_API_KEY", "").strip(),
            openai_base_url=env.get("OPENAI_BASE_URL", "").strip() or None,
            openai_model=env.get("OPENAI_MODEL_NAME", "").strip() or DEFAULT_MODEL_NAME,
            openai_timeout=_to_float("OPENAI_TIMEOUT_SECONDS", env.get("OPENAI_TIMEOUT_SECONDS"), DEFAULT_OPENAI_TIMEOUT_SECONDS),
            analysis_language=env.get("ANALYSIS_LANGUAGE", "").strip() or DEFAULT_ANALYSIS_LANGUAGE,
            processing_mode=_choice("PROCESSING_MODE", env.get("PROCESSING_MODE"), PROCESSING_MODES, MODE_GROUPED),
            enrichment_failure_policy=_choice(
                "ENRICHMENT_FAILURE_POLICY",
                env.get("ENRICHMENT_FAILURE_POLICY"),
                FAILURE_POLICIES,
                POLICY_DIAGNOSTIC,
            ),
            feishu_timeout=_to_float("FEISHU_TIMEOUT_SECONDS", env.get("FEISHU_TIMEOUT_SECONDS"), DEFAULT_FEISHU_TIMEOUT_SECONDS),
            host=env.get("APP_HOST", "").strip() or DEFAULT_HOST,
            port=port,
            debug=_to_bool(env.get("DEBUG_MODE")),
        )
