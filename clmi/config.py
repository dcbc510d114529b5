"""Runtime settings assembled from CLI arguments and the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .trimmer import DEFAULT_MAX_TOKENS

PROVIDERS = ("openai", "groq")

DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "groq": "llama-3.3-70b-versatile",
}

API_KEY_VARS = {
    "openai": ("CLMI_OPENAI_API_KEY", "OPENAI_API_KEY"),
    "groq": ("GROQ_API_KEY",),
}


@dataclass(frozen=True)
class Settings:
    provider: str = "openai"
    model: str = DEFAULT_MODELS["openai"]
    api_key: str | None = None
    base_url: str | None = None
    temperature: float = 0.0
    max_tokens: int = DEFAULT_MAX_TOKENS
    agent_mode: bool = False
    bot_file: str | None = None
    verbose: bool = False


def resolve_api_key(provider: str, environ: Mapping[str, str] | None = None) -> str | None:
    """First non-empty credential variable for the provider."""
    environ = os.environ if environ is None else environ
    for var in API_KEY_VARS.get(provider, ()):
        value = environ.get(var)
        if value:
            return value
    return None


def settings_from_args(args, environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from parsed argparse arguments plus environment defaults."""
    environ = os.environ if environ is None else environ

    provider = args.provider
    if provider not in PROVIDERS:
        raise ValueError(f"unknown provider: {provider}")

    model = args.model or environ.get("CLMI_MODEL") or DEFAULT_MODELS[provider]

    api_key = resolve_api_key(provider, environ)
    # Custom OpenAI-compatible servers often run without credentials
    if args.base_url and not api_key:
        api_key = "dummy"

    if args.max_tokens < 0:
        raise ValueError(f"--max-tokens must be >= 0, got {args.max_tokens}")

    return Settings(
        provider=provider,
        model=model,
        api_key=api_key,
        base_url=args.base_url,
        temperature=args.temperature,
        max_tokens=args.max_tokens,
        agent_mode=args.agent,
        bot_file=args.file,
        verbose=args.verbose,
    )
