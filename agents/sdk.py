from __future__ import annotations

import os
from typing import Any, Optional, Protocol


class GenerationError(RuntimeError):
    """The model call itself failed (not configured, transport/API error, empty reply)."""


class GenerativeClient(Protocol):
    def generate(self, system: str, user: str) -> str:
        ...


class AgentSDK:
    """Thin wrapper over OpenAI Chat Completions returning raw model text.

    Usage: sdk.generate(system, user) -> str, raises GenerationError.
    Parsing is left to the caller; the text is returned exactly as received.
    """

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        *,
        temperature: float = 0.0,
        timeout_s: float | None = 60.0,
        json_mode: bool = True,
    ):
        self.model = model
        self.temperature = temperature
        self.timeout_s = timeout_s
        self.json_mode = json_mode
        # Load API key from arg or env
        key = api_key or os.getenv("OPENAI_API_KEY")
        if key:
            os.environ["OPENAI_API_KEY"] = key
        self._client = None
        self.last_error: Optional[str] = None
        self.last_raw: Optional[str] = None
        self._init()

    def _init(self) -> None:
        try:
            from openai import OpenAI
            self._client = OpenAI()
        except Exception as e:
            self.last_error = f"client init failed: {e}"
            self._client = None

    def _complete(self, client: Any, system: str, user: str, *, json_format: bool) -> str:
        kwargs: dict = {
            "model": self.model,
            "temperature": self.temperature,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }
        if json_format:
            kwargs["response_format"] = {"type": "json_object"}
        resp = client.chat.completions.create(**kwargs)
        return _response_text(resp)

    def generate(self, system: str, user: str) -> str:
        if self._client is None:
            raise GenerationError(self.last_error or "OpenAI client is not configured")
        client = self._client
        try:
            client = self._client.with_options(timeout=self.timeout_s)  # type: ignore[attr-defined]
        except Exception:
            pass

        from openai import BadRequestError

        try:
            if self.json_mode:
                try:
                    text = self._complete(client, system, user, json_format=True)
                except BadRequestError as e1:
                    # Backend rejected response_format; ask again without it
                    self.last_error = f"json_format unsupported, fallback: {e1}"
                    text = self._complete(client, system, user, json_format=False)
            else:
                text = self._complete(client, system, user, json_format=False)
        except GenerationError:
            raise
        except Exception as e:
            self.last_error = f"chat path error: {e}"
            raise GenerationError(str(e)) from e

        self.last_raw = text
        return text

    def diagnostics(self) -> dict:
        return {"last_error": self.last_error, "last_raw": (self.last_raw[:200] + "…") if self.last_raw else None}


def _response_text(resp: Any) -> str:
    if isinstance(resp, str):
        return resp
    choices = getattr(resp, "choices", None)
    if not choices:
        raise GenerationError("model returned no choices")
    content = choices[0].message.content
    # A null content is passed on as empty text so the parser can reject it
    return content or ""
