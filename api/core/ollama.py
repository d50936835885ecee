"""
Ollama HTTP client helpers.

Used endpoint:
- POST /api/chat -> {"message": {"role": "assistant", "content": "..."}}

Images (bill scans) are sent base64-encoded on the user message, which
vision models such as llava accept.
"""

from __future__ import annotations

from typing import Any

import httpx

from core.settings import env_str

DEFAULT_BASE_URL = "http://localhost:11434"


# Ollama failures are explicit and separable from other runtime errors.
class OllamaError(RuntimeError):
    pass


def ollama_base_url() -> str:
    return env_str("OLLAMA_BASE_URL", DEFAULT_BASE_URL)


def _normalize_base_url(base_url: str) -> str:
    base_url = (base_url or "").strip()
    if not base_url:
        raise OllamaError("OLLAMA_BASE_URL is empty.")
    return base_url.rstrip("/")


async def chat_messages(
    *,
    model: str,
    messages: list[dict[str, Any]],
    base_url: str | None = None,
    timeout_s: float = 120.0,
    temperature: float | None = None,
    json_output: bool = False,
) -> str:
    """
    Generate one assistant message from Ollama chat API using a message list.
    """
    base_url = _normalize_base_url(base_url or ollama_base_url())
    model = (model or "").strip()
    if not model:
        raise OllamaError("Model name is empty.")
    if not messages:
        raise OllamaError("Messages list is empty.")

    payload: dict[str, Any] = {"model": model, "messages": messages, "stream": False}
    if json_output:
        payload["format"] = "json"
    if temperature is not None:
        payload["options"] = {"temperature": float(temperature)}

    try:
        async with httpx.AsyncClient(base_url=base_url, timeout=timeout_s) as client:
            resp = await client.post("/api/chat", json=payload)
    except httpx.HTTPError as exc:
        raise OllamaError(f"Ollama is unreachable: {exc}") from exc

    if resp.status_code != 200:
        # Avoid dumping huge bodies; include a small snippet.
        raise OllamaError(f"Ollama chat request failed: {resp.status_code} {resp.text[:500]}")

    try:
        data: Any = resp.json()
    except ValueError as exc:
        raise OllamaError(f"Ollama returned a non-JSON chat response: {resp.text[:200]}") from exc

    message = data.get("message") if isinstance(data, dict) else None
    if isinstance(message, dict):
        content = message.get("content")
        if isinstance(content, str) and content.strip():
            return content.strip()

    raise OllamaError("Ollama returned an empty chat response.")


async def chat_text(
    *,
    model: str,
    system_prompt: str,
    user_prompt: str,
    images: list[str] | None = None,
    **kwargs: Any,
) -> str:
    """
    One system + one user message; `images` are base64 strings.
    """
    user_message: dict[str, Any] = {"role": "user", "content": user_prompt}
    if images:
        user_message["images"] = images

    return await chat_messages(
        model=model,
        messages=[{"role": "system", "content": system_prompt}, user_message],
        **kwargs,
    )
