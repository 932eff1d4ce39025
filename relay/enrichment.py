import logging
from typing import Optional

from openai import OpenAI, OpenAIError

from .constants import (
    DEFAULT_ANALYSIS_LANGUAGE,
    DEFAULT_MODEL_NAME,
    DEFAULT_OPENAI_TIMEOUT_SECONDS,
    ENRICHMENT_FAILURE_PREFIX,
    POLICY_DIAGNOSTIC,
    POLICY_KEEP,
    SYSTEM_PROMPT_TEMPLATE,
)
from .utils import strip_markdown_fence

logger = logging.getLogger(__name__)


class EnrichmentError(RuntimeError):
    pass


def build_system_prompt(language: str = DEFAULT_ANALYSIS_LANGUAGE) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(language=language)


class DescriptionEnricher:
    """
    Rewrites an alert description into an SRE analysis report through an
    OpenAI-compatible chat-completion endpoint.

    Without an API key the enricher is disabled and ``enrich`` returns its
    input untouched. One call per description: SDK retries are turned off and
    the timeout is always explicit.
    """

    def __init__(
        self,
        api_key: str = "",
        base_url: Optional[str] = None,
        model: str = DEFAULT_MODEL_NAME,
        language: str = DEFAULT_ANALYSIS_LANGUAGE,
        timeout: float = DEFAULT_OPENAI_TIMEOUT_SECONDS,
        failure_policy: str = POLICY_DIAGNOSTIC,
        client=None,
    ):
        if failure_policy not in (POLICY_DIAGNOSTIC, POLICY_KEEP):
            raise ValueError(f"unknown enrichment failure policy: {failure_policy!r}")
        self.enabled = bool(api_key)
        self.model = model
        self.failure_policy = failure_policy
        self.system_prompt = build_system_prompt(language)
        self._client = client
        if self._client is None and self.enabled:
            self._client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)

    @classmethod
    def from_config(cls, config, client=None) -> "DescriptionEnricher":
        return cls(
            api_key=config.openai_api_key,
            base_url=config.openai_base_url,
            model=config.openai_model,
            language=config.analysis_language,
            timeout=config.openai_timeout,
            failure_policy=config.enrichment_failure_policy,
            client=client,
        )

    def analyse(self, description: str) -> str:
        """Call the model and return its cleaned reply; raises EnrichmentError."""
        try:
            resp = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": self.system_prompt},
                    {"role": "user", "content": description},
                ],
            )
        except OpenAIError as exc:
            raise EnrichmentError(str(exc) or exc.__class__.__name__) from exc

        choices = getattr(resp, "choices", None) or []
        if not choices:
            raise EnrichmentError("response contained no choices")
        content = getattr(getattr(choices[0], "message", None), "content", None)
        if not content:
            raise EnrichmentError("response contained no message content")
        return strip_markdown_fence(content)

    def enrich(self, description: str) -> str:
        if not self.enabled:
            return description

        logger.info("Calling OpenAI API for more details...")
        try:
            analysis = self.analyse(description)
        except EnrichmentError as exc:
            logger.warning(f"OpenAI API call failed: {exc}")
            if self.failure_policy == POLICY_KEEP:
                return description
            return ENRICHMENT_FAILURE_PREFIX + str(exc)

        logger.debug(f"Description from OpenAI: {analysis}")
        return analysis
