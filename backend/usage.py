from typing import Any

from config import TOKEN_WARNING_THRESHOLD
from log import get_logger
from models import TokenUsage

log = get_logger("usage")


def _field(raw: Any, name: str) -> int:
    if raw is None:
        return 0
    value = raw.get(name) if isinstance(raw, dict) else getattr(raw, name, None)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


def reconcile_usage(raw: Any) -> TokenUsage:
    """Build the canonical usage record from a provider usage object.

    Accepts either naming generation (input/output or prompt/completion) as
    a dict or an SDK object. Both generations are filled in identically and
    the total is derived when the provider leaves it out.
    """
    prompt = _field(raw, "input_tokens") or _field(raw, "prompt_tokens")
    completion = _field(raw, "output_tokens") or _field(raw, "completion_tokens")
    total = _field(raw, "total_tokens") or prompt + completion
    return TokenUsage(
        prompt_tokens=prompt,
        completion_tokens=completion,
        total_tokens=total,
        input_tokens=prompt,
        output_tokens=completion,
    )


def usage_warnings(usage: TokenUsage, threshold: int = TOKEN_WARNING_THRESHOLD) -> list[str]:
    if usage.total_tokens > threshold:
        log.warning("High token usage detected: %d tokens", usage.total_tokens)
        return [
            f"High token usage: {usage.total_tokens} tokens. "
            "Consider using smaller images to reduce costs."
        ]
    return []
