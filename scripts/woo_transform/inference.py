"""
AI-assisted inference for variation attributes.

Only consulted when the heuristics cannot place a variation. Every failure
(network, timeout, malformed JSON) degrades to "no result": the caller keeps
whatever the heuristics found.
"""

import asyncio
import json
import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import openai
from openai import AsyncOpenAI

from .config import InferenceConfig
from .records import AttributeSpec, ParentProduct, VariationProduct

log = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS = (
    openai.APITimeoutError,
    openai.APIConnectionError,
    asyncio.TimeoutError,
    ConnectionResetError,
)

VARIATION_TYPES = ("image", "boolean", "dropdown")

JSON_SYSTEM_PROMPT = "You are a helpful assistant that analyzes product data and returns only valid JSON."
TYPE_SYSTEM_PROMPT = "You are a helpful assistant. Return only one word: image, boolean, or dropdown."
TEXT_SYSTEM_PROMPT = (
    "Extract plain text from HTML. Remove all HTML tags, attributes, and formatting. "
    "Convert <p> tags to newlines. Preserve the text content only. "
    "Do not add any commentary or explanations."
)


def build_attribute_prompt(variation: VariationProduct, parent: ParentProduct) -> str:
    attributes = "\n".join(
        f"  {attr.index}. {attr.name}: {', '.join(attr.values)}"
        for attr in parent.attributes
    )
    return f"""You are analyzing a WordPress product variation to determine which attribute values it represents.

Parent Product:
- Name: {parent.name}
- SKU: {parent.sku}
- Attributes:
{attributes}

Variation:
- SKU: {variation.sku or '(empty)'}
- Name: {variation.name}
- Price: {variation.regular_price}
- Stock: {variation.stock}

Determine which attribute values this variation represents.
Return ONLY valid JSON in this format:
{{
  "attribute1": "value1" or null,
  "attribute2": "value2" or null,
  "attribute3": "value3" or null
}}

Use the exact attribute value names from the list above. If you cannot determine a value, use null."""


def build_type_prompt(product_name: str, attr_name: str, values: List[str]) -> str:
    return f"""Determine the variation type for this product attribute:

Product: {product_name}
Attribute Name: {attr_name}
Attribute Values: {', '.join(values)}

Variation types:
- "image": For visual selections like colors, materials, finishes where each option typically has an image
- "boolean": For yes/no, on/off, include/exclude type selections (usually 2 options)
- "dropdown": For standard select dropdowns with multiple options

Return ONLY one word: "image", "boolean", or "dropdown"
"""


def parse_json_object(content: str) -> Optional[Dict[str, Any]]:
    """
    Pull a JSON object out of a model reply.

    Handles markdown fences and surrounding prose, trailing commas, and as a
    second attempt, // and /* */ comments.
    """
    if not content:
        return None
    m = re.search(r'\{[\s\S]*\}', content)
    if not m:
        return None

    text = re.sub(r',(\s*[}\]])', r'\1', m.group(0))
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        log.warning("JSON parse failed, attempting cleanup")
        text = re.sub(r'//.*$', '', text, flags=re.MULTILINE)
        text = re.sub(r'/\*[\s\S]*?\*/', '', text)
        text = re.sub(r',(\s*[}\]])', r'\1', text)
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            log.error(f"Could not parse JSON after cleanup: {text[:200]}...")
            return None

    return parsed if isinstance(parsed, dict) else None


def match_declared_value(candidate: Any, attr: AttributeSpec) -> Optional[str]:
    """Map a model answer onto the attribute's declared spelling, if it is one."""
    if not isinstance(candidate, str):
        return None
    wanted = candidate.strip().lower()
    if not wanted:
        return None
    for value in attr.values:
        if value.lower() == wanted:
            return value
    return None


def _message_content(response: Any) -> str:
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None) or ""
    return content.strip()


class AttributeInferenceClient:
    """Thin async wrapper over the chat completions API with retry/backoff."""

    def __init__(self, config: InferenceConfig, client: Optional[Any] = None):
        self.config = config
        self.failures = 0
        if client is None:
            client = AsyncOpenAI(
                api_key=config.api_key,
                timeout=config.timeout,
                max_retries=0,  # retries are ours
            )
        self._client = client

    @classmethod
    def from_config(cls, config: InferenceConfig) -> Optional["AttributeInferenceClient"]:
        if not config.enabled:
            log.warning("OPENAI_API_KEY not found. AI inference will be disabled.")
            return None
        log.info(f"OpenAI inference enabled (model: {config.model})")
        return cls(config)

    async def retry_with_backoff(self, fn: Callable[[], Awaitable[T]], label: str = "") -> T:
        """
        Run ``fn``, retrying timeout/connection failures with exponential
        backoff (1s, 2s, 4s by default). Anything else is raised at once.
        """
        attempt = 0
        while True:
            try:
                return await asyncio.wait_for(fn(), timeout=self.config.timeout)
            except RETRYABLE_ERRORS as e:
                if attempt >= self.config.max_retries:
                    raise
                delay = self.config.backoff_base * (2 ** attempt)
                attempt += 1
                log.warning(
                    f"Retry attempt {attempt}/{self.config.max_retries} for {label or 'AI call'} "
                    f"after {delay:g}s ({type(e).__name__})"
                )
                await asyncio.sleep(delay)

    async def _complete(self, system: str, prompt: str, max_tokens: int,
                        temperature: Optional[float] = None, label: str = "") -> Optional[str]:
        temperature = self.config.temperature if temperature is None else temperature

        async def call():
            return await self._client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )

        try:
            response = await self.retry_with_backoff(call, label=label)
        except (openai.OpenAIError, *RETRYABLE_ERRORS) as e:
            self.failures += 1
            log.error(f"OpenAI call failed for {label or 'request'}: {e}")
            return None
        return _message_content(response) or None

    async def infer_attributes(self, variation: VariationProduct,
                               parent: ParentProduct) -> Dict[str, str]:
        """Best-guess attribute mapping, restricted to the parent's declared values."""
        if not parent.attributes:
            return {}
        content = await self._complete(
            JSON_SYSTEM_PROMPT,
            build_attribute_prompt(variation, parent),
            max_tokens=200,
            label=f"variation {variation.label}",
        )
        if not content:
            return {}

        parsed = parse_json_object(content)
        if parsed is None:
            log.error(f"Unusable AI response for variation {variation.label}")
            return {}

        result = {}
        for attr in parent.attributes:
            value = match_declared_value(parsed.get(attr.key), attr)
            if value:
                result[attr.key] = value
        return result

    async def infer_variation_type(self, product_name: str, attr_name: str,
                                   values: List[str]) -> Optional[str]:
        content = await self._complete(
            TYPE_SYSTEM_PROMPT,
            build_type_prompt(product_name, attr_name, values),
            max_tokens=10,
            label=f"attribute {attr_name}",
        )
        answer = (content or "").strip().strip('"').lower()
        return answer if answer in VARIATION_TYPES else None

    async def extract_text(self, html: str) -> Optional[str]:
        return await self._complete(
            TEXT_SYSTEM_PROMPT,
            html[:4000],
            max_tokens=2000,
            temperature=0,
            label="description",
        )
