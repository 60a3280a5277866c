"""
OpenAI chat-completion client used by the answer validator.

One request per call, no streaming, no conversation state.

Model: gpt-4o-mini  (override with GPT_MODEL env var, e.g. "gpt-4o")
"""

import os
from openai import AsyncOpenAI

# ── Model config ───────────────────────────────────────────────────────────────
GPT_MODEL = os.getenv("GPT_MODEL", "gpt-4o-mini")

# Lazy singleton
_client: AsyncOpenAI | None = None


def is_configured() -> bool:
    """True when an API key is available for remote validation."""
    return bool(os.getenv("OPENAI_API_KEY"))


def _get_client() -> AsyncOpenAI:
    global _client
    if _client is None:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise RuntimeError(
                "OPENAI_API_KEY is not set. Add it to your .env file."
            )
        _client = AsyncOpenAI(api_key=api_key, max_retries=0)
    return _client


async def complete(
    system_prompt: str,
    user_prompt: str,
    temperature: float = 0.7,
    max_tokens: int = 800,
) -> str:
    """
    Call OpenAI Chat Completions and return the assistant message text.

    Args:
        system_prompt: System instruction
        user_prompt:   User-turn message
        temperature:   Sampling temperature
        max_tokens:    Max response tokens

    Returns:
        Raw string content of the model response
    """
    client = _get_client()
    response = await client.chat.completions.create(
        model=GPT_MODEL,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        temperature=temperature,
        max_tokens=max_tokens,
    )
    return response.choices[0].message.content or ""
