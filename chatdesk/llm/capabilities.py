"""
Model capability table - output limits and required request headers per model.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping


@dataclass(frozen=True)
class ModelCapability:
    """Static per-model request configuration."""
    model: str
    max_output_tokens: int
    label: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def needs_raw_transport(self) -> bool:
        """Models with extra headers are streamed over the raw SSE path."""
        return bool(self.headers)


DEFAULT_MAX_OUTPUT_TOKENS = 4096

_CAPABILITIES: Dict[str, ModelCapability] = {
    cap.model: cap for cap in (
        ModelCapability(
            model="claude-3-7-sonnet-latest",
            label="Claude 3.7 Sonnet (128k output)",
            max_output_tokens=128000,
            headers=MappingProxyType({"anthropic-beta": "output-128k-2025-02-19"}),
        ),
        ModelCapability(model="claude-sonnet-4-0", label="Claude Sonnet 4", max_output_tokens=64000),
        ModelCapability(model="claude-opus-4-0", label="Claude Opus 4", max_output_tokens=32000),
        ModelCapability(model="claude-3-5-sonnet-latest", label="Claude 3.5 Sonnet", max_output_tokens=8192),
        ModelCapability(model="claude-3-5-haiku-latest", label="Claude 3.5 Haiku", max_output_tokens=8192),
        ModelCapability(model="claude-3-opus-latest", label="Claude 3 Opus", max_output_tokens=4096),
    )
}

CAPABILITY_TABLE: Mapping[str, ModelCapability] = MappingProxyType(_CAPABILITIES)


def get_capability(model: str) -> ModelCapability:
    """Look up a model; unknown models get the conservative default."""
    capability = CAPABILITY_TABLE.get(model)
    if capability is None:
        return ModelCapability(model=model, label=model, max_output_tokens=DEFAULT_MAX_OUTPUT_TOKENS)
    return capability


def list_models() -> list[ModelCapability]:
    return list(CAPABILITY_TABLE.values())
