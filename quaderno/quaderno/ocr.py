"""Page transcription through an OpenAI-compatible chat-completions endpoint.

The client is deliberately small and dependency-free: one POST per page,
with the page image inlined as a base64 data URL.
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass
from http.client import HTTPException
from typing import Any, Protocol
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transcription:
    """Result of transcribing one page. `ok` is False on any failure."""

    text: str
    ok: bool
    error: str | None = None

    @classmethod
    def failed(cls, error: str) -> "Transcription":
        return cls(text="", ok=False, error=error)


class Transcriber(Protocol):
    def transcribe(self, image: bytes) -> Transcription:
        ...


@dataclass(frozen=True)
class OpenAIConfig:
    api_key: str
    endpoint: str = "https://api.openai.com/v1/chat/completions"
    model: str = "gpt-4o"
    prompt: str = ""
    max_tokens: int = 4096
    timeout_s: float = 120.0


def build_payload(cfg: OpenAIConfig, image: bytes) -> dict[str, Any]:
    encoded = base64.b64encode(image).decode("ascii")
    return {
        "model": cfg.model,
        "messages": [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": cfg.prompt},
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:image/jpeg;base64,{encoded}"},
                    },
                ],
            }
        ],
        "max_tokens": cfg.max_tokens,
    }


def extract_content(payload: dict[str, Any]) -> str | None:
    """The first choice's message content, or None if absent/empty."""
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    if not isinstance(content, str) or not content.strip():
        return None
    return content


class OpenAITranscriber:
    """Transcribe page images with a vision-capable chat model."""

    def __init__(self, cfg: OpenAIConfig) -> None:
        self._cfg = cfg

    def transcribe(self, image: bytes) -> Transcription:
        body = json.dumps(build_payload(self._cfg, image)).encode("utf-8")
        req = Request(
            self._cfg.endpoint,
            data=body,
            method="POST",
            headers={
                "Authorization": f"Bearer {self._cfg.api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

        try:
            with urlopen(req, timeout=self._cfg.timeout_s) as resp:
                payload = json.loads(resp.read().decode("utf-8"))
        except HTTPError as e:
            detail = ""
            try:
                detail = json.loads(e.read().decode("utf-8")).get("error", {}).get("message", "")
            except (ValueError, AttributeError, OSError):
                pass
            return Transcription.failed(f"HTTP error {e.code}: {detail or e.reason}")
        except URLError as e:
            return Transcription.failed(f"connection error: {e.reason}")
        except (TimeoutError, HTTPException, ValueError) as e:
            # Truncated bodies, non-UTF-8 bytes and malformed JSON.
            return Transcription.failed(f"bad response: {e!r}")
        except OSError as e:
            return Transcription.failed(f"connection error: {e}")

        if isinstance(payload, dict) and payload.get("error"):
            error = payload["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            return Transcription.failed(f"provider error: {message}")

        content = extract_content(payload) if isinstance(payload, dict) else None
        if content is None:
            return Transcription.failed("response has no transcription content")
        return Transcription(text=content, ok=True)
