"""Bot definitions: system instructions plus an initial-turn template."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from jinja2 import ChainableUndefined, Environment, Template, TemplateError
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import BotDefinitionError

logger = logging.getLogger("clmi.bot")

DEFAULT_SYSTEM_MESSAGE = (
    "You are a helpful AI assistant. Responses will be displayed on the command "
    "line in plain text so please use minimal formatting."
)
DEFAULT_INITIAL_PROMPT_TEMPLATE = "{{input}}"

# Missing attributes render as "", matching Handlebars paths
_environment = Environment(undefined=ChainableUndefined, keep_trailing_newline=True)


class BotDefinition(BaseModel):
    """On-disk shape: {"systemMessage": str, "initialPromptTemplate": str}."""

    model_config = ConfigDict(extra="forbid", strict=True, frozen=True)

    system_message: str = Field(alias="systemMessage")
    initial_prompt_template: str = Field(alias="initialPromptTemplate")


DEFAULT_BOT = BotDefinition.model_validate({
    "systemMessage": DEFAULT_SYSTEM_MESSAGE,
    "initialPromptTemplate": DEFAULT_INITIAL_PROMPT_TEMPLATE,
})


@dataclass(frozen=True)
class CompiledBot:
    """A bot definition with its template parsed once for reuse."""
    definition: BotDefinition
    template: Template

    @property
    def system_message(self) -> str:
        return self.definition.system_message

    def render(self, input: str) -> str:
        """Fill the initial prompt template for the first turn."""
        return self.template.render(input=input)


def compile_bot(definition: BotDefinition) -> CompiledBot:
    try:
        template = _environment.from_string(definition.initial_prompt_template)
        template.render(input="")
    except (TemplateError, TypeError, ValueError) as e:
        raise BotDefinitionError(f"invalid initialPromptTemplate: {e}") from e
    return CompiledBot(definition=definition, template=template)


def parse_bot_definition(raw: str) -> BotDefinition:
    """Validate JSON text against the exact bot definition shape."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise BotDefinitionError(f"invalid JSON: {e}") from e

    try:
        return BotDefinition.model_validate(data)
    except ValidationError as e:
        raise BotDefinitionError(str(e)) from e


def load_bot(path: str | Path) -> CompiledBot:
    """Read, validate and compile a bot definition file."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise BotDefinitionError(f"cannot read {path}: {e.strerror or e}") from e
    except UnicodeDecodeError as e:
        raise BotDefinitionError(f"{path} is not UTF-8 text: {e.reason}") from e

    bot = compile_bot(parse_bot_definition(raw))
    logger.debug("Compiled bot definition from %s", path)
    return bot


def default_bot() -> CompiledBot:
    return compile_bot(DEFAULT_BOT)
