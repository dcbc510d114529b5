"""Session state and the line-driven controller that runs each REPL turn."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Callable, Sequence

from rich.console import Console

from .agent import ToolAgent
from .bot import CompiledBot, default_bot, load_bot
from .content import normalize
from .errors import BotDefinitionError, TurnError
from .llm import ChatModel
from .models import Conversation, Message, Role
from .tool_exchange import fold
from .trimmer import DEFAULT_MAX_TOKENS, trim

logger = logging.getLogger("clmi.session")

_HISTORY_LABELS = {
    Role.HUMAN: ">>> Human",
    Role.ASSISTANT: "<<< Bot",
    Role.TOOL: "--- Tool",
    Role.SYSTEM: "### System",
}


# -- Session state --

@dataclass(frozen=True)
class Session:
    """The active bot and the conversation held under it."""
    bot: CompiledBot
    conversation: Conversation = ()


def new_session(bot: CompiledBot | None = None) -> Session:
    return Session(bot=bot or default_bot())


def reset(session: Session) -> Session:
    """Clear the conversation, keep the bot."""
    return replace(session, conversation=())


def load(session: Session, path: str | Path) -> Session:
    """Swap in the bot from ``path`` with an empty conversation.

    Raises BotDefinitionError and leaves ``session`` untouched on failure.
    """
    return replace(session, bot=load_bot(path), conversation=())


def with_conversation(session: Session, conversation: Sequence[Message]) -> Session:
    return replace(session, conversation=tuple(conversation))


def format_history(conversation: Sequence[Message]) -> str:
    """Debug rendering of the trimmed history."""
    lines = ["[Trimmed Conversation History]"]
    for msg in conversation:
        label = _HISTORY_LABELS[msg.role]
        if msg.role is Role.TOOL and msg.tool_result_ref and msg.tool_result_ref.tool_name:
            label = f"{label} ({msg.tool_result_ref.tool_name})"
        text = normalize(msg.content)
        if msg.has_tool_calls:
            calls = ", ".join(f"{c.name}({c.arguments})" for c in msg.tool_calls)
            text = f"{text} [calls: {calls}]" if text else f"[calls: {calls}]"
        lines.append(f"    {label}: {text}")
    lines.append("[*** End of History ***]")
    return "\n".join(lines)


# -- Controller --

class ControllerState(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    TERMINATED = "terminated"


class SessionController:
    """
    Drives one REPL turn per input line.

    Lines are handled strictly one at a time: ``handle_line`` returns only
    after the model round trip completes and the reply is printed.

    Commands (first whitespace-delimited token, case-sensitive):
        .exit         - end the session (also EOF or an empty line)
        .reset        - clear the conversation
        .load <path>  - load a new bot definition and clear the conversation

    Anything else is a chat message. Exactly one of ``chat_model`` (plain
    mode) or ``agent_factory`` (agent mode, called with the system prompt)
    must be given.
    """

    def __init__(
        self,
        session: Session,
        chat_model: ChatModel | None = None,
        agent_factory: Callable[[str], ToolAgent] | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        out: Console | None = None,
        diag: Console | None = None,
    ):
        if (chat_model is None) == (agent_factory is None):
            raise ValueError("pass exactly one of chat_model or agent_factory")

        self.session = session
        self.chat_model = chat_model
        self.agent_factory = agent_factory
        self.agent = agent_factory(session.bot.system_message) if agent_factory else None
        self.max_tokens = max_tokens
        self.out = out or Console(highlight=False, emoji=False)
        self.diag = diag or Console(stderr=True, highlight=False, emoji=False)
        self.state = ControllerState.IDLE

    @property
    def agent_mode(self) -> bool:
        return self.agent_factory is not None

    def handle_line(self, line: str | None) -> bool:
        """Process one input line. Returns False once the session has ended."""
        if self.state is ControllerState.TERMINATED:
            return False

        text = line.strip() if line is not None else ""
        words = text.split()
        command = words[0] if words else None

        if command is None or text == ".exit":
            self.state = ControllerState.TERMINATED
            return False

        if text == ".reset":
            self.session = reset(self.session)
            logger.debug("Conversation reset")
            return True

        if command == ".load":
            self._load(words[1] if len(words) > 1 else None)
            return True

        self.state = ControllerState.PROCESSING
        try:
            self._chat_turn(line)
        except Exception as e:
            self.state = ControllerState.TERMINATED
            raise TurnError(f"Unexpected error processing user input: {e}") from e
        self.state = ControllerState.IDLE
        return True

    def _load(self, path: str | None):
        if path is None:
            logger.error("Error loading bot definition from file: no path given (usage: .load <path>)")
            return
        try:
            session = load(self.session, path)
            agent = self.agent_factory(session.bot.system_message) if self.agent_factory else None
        except BotDefinitionError as e:
            logger.error("Error loading bot definition from file: %s", e)
            return

        self.session = session
        self.agent = agent
        self.diag.print(f"Loaded bot definition from file: {path}", markup=False, soft_wrap=True)

    def _chat_turn(self, line: str):
        session = self.session
        system = Message.system(session.bot.system_message)

        if not session.conversation:
            # First turn goes through the bot's initial prompt template
            conversation: Conversation = (Message.human(session.bot.render(line)),)
        else:
            conversation = trim(session.conversation + (Message.human(line),), self.max_tokens)
            self.diag.print(format_history(conversation), markup=False, emoji=False, soft_wrap=True)

        if self.agent is not None:
            returned = self.agent.run(conversation, on_token=self._write_token)
            conversation = fold(conversation, conversation, returned)
            self.out.print()
            self.out.print()
        else:
            reply = self.chat_model.invoke([system, *conversation])
            conversation = conversation + (reply,)
            self.out.print(normalize(reply.content), markup=False, emoji=False, soft_wrap=True)
            self.out.print()

        self.session = with_conversation(session, conversation)

    def _write_token(self, token: str):
        self.out.print(token, end="", markup=False, emoji=False, soft_wrap=True)
