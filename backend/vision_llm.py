from dataclasses import dataclass, field
from typing import Any

import anthropic

from config import ANTHROPIC_API_KEY, VISION_MAX_TOKENS, VISION_MODEL
from errors import ProviderError
from images import DownloadedImage
from log import get_logger
from models import DetectedItem, TokenUsage
from output_parser import parse_items, parse_single_item
from prompts import build_multi_item_prompt, build_single_item_prompt
from tags import resolve_tags
from usage import reconcile_usage, usage_warnings

log = get_logger("vision")


@dataclass
class VisionReply:
    text: str
    usage: Any = None


@dataclass
class ItemsAnalysis:
    items: list[DetectedItem]
    token_usage: TokenUsage
    warnings: list[str] = field(default_factory=list)


@dataclass
class SingleItemAnalysis:
    item: DetectedItem
    token_usage: TokenUsage
    warnings: list[str] = field(default_factory=list)


class VisionClient:
    """Sends one image plus instructions to the Claude vision model."""

    def __init__(
        self,
        client: anthropic.AsyncAnthropic | None = None,
        model: str = VISION_MODEL,
        max_tokens: int = VISION_MAX_TOKENS,
    ):
        self._client = client or anthropic.AsyncAnthropic(api_key=ANTHROPIC_API_KEY)
        self.model = model
        self.max_tokens = max_tokens

    async def describe(self, image: DownloadedImage, prompt: str) -> VisionReply:
        try:
            response = await self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": image.media_type,
                                    "data": image.base64,
                                },
                            },
                            {
                                "type": "text",
                                "text": prompt,
                            },
                        ],
                    }
                ],
            )
        except anthropic.APIStatusError as exc:
            raise ProviderError("Anthropic", f"HTTP {exc.status_code}: {exc.message}")
        except anthropic.APIError as exc:
            raise ProviderError("Anthropic", str(exc))

        text = "".join(block.text for block in response.content if getattr(block, "type", None) == "text")
        log.info("Model replied with %d characters (stop reason: %s)", len(text), response.stop_reason)
        log.debug("First 200 chars: %s", text[:200])
        return VisionReply(text=text, usage=response.usage)

    async def aclose(self) -> None:
        await self._client.close()


def _log_tags(caller_tags: list[str], merged: list[str]) -> None:
    log.info("[tags] caller provided %d tag(s): %s", len(caller_tags), ", ".join(caller_tags) or "none")
    log.debug("[tags] merged vocabulary (%d): %s", len(merged), ", ".join(merged))


async def analyze_items(
    vision: VisionClient,
    image: DownloadedImage,
    language: str | None = "en",
    caller_tags: list[str] | None = None,
) -> ItemsAnalysis:
    """Detect every identifiable item in the image."""
    caller_tags = caller_tags or []
    tags = resolve_tags(caller_tags)
    _log_tags(caller_tags, tags)

    reply = await vision.describe(image, build_multi_item_prompt(language, tags))
    token_usage = reconcile_usage(reply.usage)
    log.info("Token usage: %s", token_usage.model_dump())
    warnings = usage_warnings(token_usage)

    parsed = parse_items(reply.text)
    if parsed.dropped:
        warnings.append(f"Dropped {parsed.dropped} malformed item(s) from the model response.")
    return ItemsAnalysis(items=parsed.items, token_usage=token_usage, warnings=warnings)


async def analyze_single_item(
    vision: VisionClient,
    image: DownloadedImage,
    item_name: str | None = None,
    language: str | None = "en",
    caller_tags: list[str] | None = None,
) -> SingleItemAnalysis:
    """Describe the named item, or the most prominent one when no name is given."""
    caller_tags = caller_tags or []
    tags = resolve_tags(caller_tags)
    _log_tags(caller_tags, tags)

    reply = await vision.describe(image, build_single_item_prompt(item_name, language, tags))
    token_usage = reconcile_usage(reply.usage)
    log.info("Token usage: %s", token_usage.model_dump())
    warnings = usage_warnings(token_usage)

    item = parse_single_item(reply.text)
    return SingleItemAnalysis(item=item, token_usage=token_usage, warnings=warnings)
