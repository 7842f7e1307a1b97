"""LLM provider domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True)
class LLMMessage:
    """A single message in a conversation."""

    role: str  # "system", "user", "assistant"
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict) -> LLMMessage:
        return cls(role=str(data.get("role", "user")), content=str(data.get("content", "")))


@dataclass(frozen=True)
class LLMConfig:
    """Configuration for an LLM completion request."""

    model: str = ""
    max_tokens: int = 1000
    temperature: float = 0.7
    model_traits: tuple[str, ...] = ()
    character_slug: str = ""
    parameters: dict | None = None


@dataclass(frozen=True)
class LLMUsage:
    """Token accounting reported by the provider. Advisory only."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    model: str = ""

    def __post_init__(self) -> None:
        for name in ("prompt_tokens", "completion_tokens", "total_tokens"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

    @classmethod
    def from_api(cls, raw: dict | None, model: str) -> LLMUsage | None:
        if not raw:
            return None
        prompt = max(0, int(raw.get("prompt_tokens", 0) or 0))
        completion = max(0, int(raw.get("completion_tokens", 0) or 0))
        total = max(0, int(raw.get("total_tokens", prompt + completion) or 0))
        return cls(prompt_tokens=prompt, completion_tokens=completion, total_tokens=total, model=model)


@dataclass(frozen=True)
class LLMResponse:
    """Response from an LLM provider."""

    content: str
    model: str = ""
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    usage: LLMUsage | None = None
