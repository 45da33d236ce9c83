"""
LLM Client
Single text-completion call against DeepSeek, OpenAI, Grok (xAI) or Anthropic.

Every call is independent: no retries and no caching. The whole request runs
under a hard wall-clock timeout; on expiry the in-flight request is cancelled
and LLMTimeoutError is raised.
"""
import os
import asyncio
import logging
from typing import Optional, Dict, Any, List
from enum import Enum

import httpx

from docquiz.core.config import settings
from docquiz.core.exceptions import DocQuizError

logger = logging.getLogger(__name__)


class LLMProvider(str, Enum):
    DEEPSEEK = "deepseek"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GROK = "grok"


class LLMClientError(DocQuizError):
    """Base exception for LLM client errors"""
    kind = "ai-service-failure"
    status_code = 502
    reason = "service-error"


class LLMTimeoutError(LLMClientError):
    """Raised when LLM request times out"""
    reason = "timeout"


class LLMAPIError(LLMClientError):
    """Raised when LLM API returns an error"""

    def __init__(self, message: str = "", status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class LLMNetworkError(LLMClientError):
    """Raised when the LLM API cannot be reached"""
    reason = "network-error"


# API Endpoints
DEEPSEEK_API_URL = "https://api.deepseek.com/v1/chat/completions"
OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
GROK_API_URL = "https://api.x.ai/v1/chat/completions"

ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_SYSTEM_MESSAGE = "Return ONLY valid JSON."

_OPENAI_COMPATIBLE = {
    LLMProvider.DEEPSEEK: ("DeepSeek", DEEPSEEK_API_URL),
    LLMProvider.OPENAI: ("OpenAI", OPENAI_API_URL),
    LLMProvider.GROK: ("Grok", GROK_API_URL),
}


def _resolve_provider(provider: Optional[str]) -> LLMProvider:
    name = (provider or settings.llm_provider).lower()
    try:
        return LLMProvider(name)
    except ValueError:
        raise LLMClientError(
            f"Invalid provider: {name}. "
            f"Supported providers: {[p.value for p in LLMProvider]}"
        )


def _api_key(provider: LLMProvider) -> Optional[str]:
    if provider == LLMProvider.GROK:
        return os.getenv("GROK_API_KEY") or os.getenv("XAI_API_KEY")
    return os.getenv(f"{provider.value.upper()}_API_KEY")


def get_model_name(provider: Optional[str] = None) -> str:
    """Model identifier configured for the provider"""
    resolved = _resolve_provider(provider)
    return {
        LLMProvider.DEEPSEEK: settings.deepseek_model,
        LLMProvider.OPENAI: settings.openai_model,
        LLMProvider.ANTHROPIC: settings.anthropic_model,
        LLMProvider.GROK: settings.grok_model,
    }[resolved]


async def _post(
    api_url: str,
    headers: Dict[str, str],
    payload: Dict[str, Any],
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport]
) -> Dict[str, Any]:
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        response = await client.post(api_url, headers=headers, json=payload)
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as e:
            raise LLMAPIError(
                f"Non-JSON response body: {response.text[:200]}",
                status=response.status_code
            ) from e


def _build_request(
    provider: LLMProvider,
    api_key: str,
    prompt: str,
    system: str,
    max_tokens: int,
    temperature: float
):
    model = get_model_name(provider.value)

    if provider == LLMProvider.ANTHROPIC:
        headers = {
            "x-api-key": api_key,
            "Content-Type": "application/json",
            "anthropic-version": ANTHROPIC_VERSION
        }
        payload = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system,
            "messages": [
                {"role": "user", "content": prompt}
            ]
        }
        return ANTHROPIC_API_URL, headers, payload

    _, api_url = _OPENAI_COMPATIBLE[provider]
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json"
    }
    payload = {
        "model": model,
        "messages": [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt}
        ],
        "temperature": temperature,
        "max_tokens": max_tokens
    }
    return api_url, headers, payload


def _extract_content(provider: LLMProvider, data: Dict[str, Any]) -> str:
    try:
        if provider == LLMProvider.ANTHROPIC:
            return data["content"][0]["text"] or ""
        return data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError) as e:
        raise LLMAPIError(f"Unexpected response shape from {provider.value}: {e}")


async def complete(
    prompt: str,
    max_tokens: int,
    temperature: float,
    *,
    provider: Optional[str] = None,
    system: str = DEFAULT_SYSTEM_MESSAGE,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> str:
    """
    Send one prompt and return the raw completion text

    Args:
        prompt: The prompt to send
        max_tokens: Output token limit
        temperature: Sampling temperature
        provider: Provider name (defaults to settings.llm_provider)
        system: System message
        timeout: Hard wall-clock timeout in seconds (defaults to settings.llm_timeout)
        transport: Optional httpx transport

    Returns:
        Raw string output from the LLM (no parsing)

    Raises:
        LLMTimeoutError: If the request does not finish within timeout
        LLMAPIError: If the API returns a non-success status or no content
        LLMNetworkError: If the API cannot be reached
        LLMClientError: If the provider is unknown or has no API key
    """
    resolved = _resolve_provider(provider)
    timeout = timeout or settings.llm_timeout
    name = _OPENAI_COMPATIBLE.get(resolved, ("Anthropic", ANTHROPIC_API_URL))[0]

    api_key = _api_key(resolved)
    if not api_key:
        raise LLMClientError(f"{name} API key environment variable not set")

    api_url, headers, payload = _build_request(
        resolved, api_key, prompt, system, max_tokens, temperature
    )

    logger.info(f"🤖 Calling {name} (max_tokens={max_tokens}, timeout={timeout}s)")

    try:
        data = await asyncio.wait_for(
            _post(api_url, headers, payload, timeout, transport),
            timeout=timeout
        )
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        logger.error(f"❌ {name} request timed out after {timeout}s")
        raise LLMTimeoutError(f"{name} request timed out after {timeout}s") from e
    except httpx.HTTPStatusError as e:
        logger.error(f"❌ {name} API error: {e.response.status_code}")
        raise LLMAPIError(
            f"{name} API error {e.response.status_code}: {e.response.text[:500]}",
            status=e.response.status_code
        ) from e
    except httpx.TransportError as e:
        logger.error(f"❌ {name} network error: {e}")
        raise LLMNetworkError(f"{name} network error: {e}") from e

    content = _extract_content(resolved, data)
    if not content.strip():
        raise LLMAPIError(f"{name} returned an empty response")

    logger.info(f"✅ {name} response received ({len(content)} chars)")
    return content


async def health_check(provider: Optional[str] = None) -> dict:
    """
    Check if LLM provider is configured

    Args:
        provider: LLM provider to check

    Returns:
        Health status dictionary
    """
    try:
        resolved = _resolve_provider(provider)
    except LLMClientError:
        return {"provider": provider, "status": "error", "message": "Invalid provider"}

    configured = bool(_api_key(resolved))

    return {
        "provider": resolved.value,
        "configured": configured,
        "model": get_model_name(resolved.value),
        "status": "ready" if configured else "not_configured"
    }


def get_available_providers() -> List[str]:
    """
    Get list of configured providers

    Returns:
        List of provider names that have API keys configured
    """
    available = [p.value for p in LLMProvider if _api_key(p)]
    if not available:
        logger.warning("⚠️ No LLM API key found, document processing will fail")
    return available
