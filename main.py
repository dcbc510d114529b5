"""Interactive CLI for the bounded-context chat client."""

import argparse
import logging
import sys

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich import box

from clmi.agent import ToolAgent
from clmi.bot import load_bot
from clmi.config import DEFAULT_MAX_TOKENS, PROVIDERS, settings_from_args
from clmi.errors import BotDefinitionError, TurnError
from clmi.llm import ChatModel, make_client
from clmi.session import SessionController, new_session
from clmi.tools import default_registry


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Chat with a language model from the command line")
    parser.add_argument("-f", "--file", help="Load the bot definition from a JSON file")
    parser.add_argument("--provider", default="openai", choices=PROVIDERS, help="LLM provider")
    parser.add_argument("--model", help="Model name to use (default depends on provider, or $CLMI_MODEL)")
    parser.add_argument("--base-url", help="Base URL for an OpenAI-compatible API")
    parser.add_argument("--agent", action="store_true", help="Enable tool calling with streamed output")
    parser.add_argument("--max-tokens", type=int, default=DEFAULT_MAX_TOKENS, help="Token budget for retained history")
    parser.add_argument("--temperature", type=float, default=0.0, help="Sampling temperature")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")
    return parser


def main(argv=None):
    load_dotenv()

    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    # Keep HTTP client chatter out of --verbose output
    for noisy in ("httpx", "httpcore", "openai", "groq"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    err = Console(stderr=True, highlight=False, emoji=False)

    try:
        settings = settings_from_args(args)
    except ValueError as e:
        err.print(f"Error: {e}", markup=False)
        sys.exit(1)

    if not settings.api_key:
        err.print(
            f"Error: no API key for provider '{settings.provider}'. "
            "Set CLMI_OPENAI_API_KEY (or GROQ_API_KEY for --provider groq) in the environment or .env file.",
            markup=False,
        )
        sys.exit(1)

    bot = None
    if settings.bot_file:
        try:
            bot = load_bot(settings.bot_file)
        except BotDefinitionError as e:
            err.print(f"Error loading bot definition from file: {e}", markup=False)
            sys.exit(1)

    client = make_client(settings)
    console = Console(highlight=False, emoji=False)

    if settings.agent_mode:
        tools = default_registry()

        def agent_factory(system_prompt: str) -> ToolAgent:
            return ToolAgent(
                client,
                model=settings.model,
                system_prompt=system_prompt,
                tools=tools,
                temperature=settings.temperature,
                include_usage=settings.provider == "openai",
            )

        controller = SessionController(
            new_session(bot), agent_factory=agent_factory,
            max_tokens=settings.max_tokens, out=console, diag=err,
        )
    else:
        controller = SessionController(
            new_session(bot), chat_model=ChatModel(client, settings.model, settings.temperature),
            max_tokens=settings.max_tokens, out=console, diag=err,
        )

    err.print(Panel(
        f"[bold cyan]clmi[/bold cyan] · {settings.provider}/{settings.model}"
        f"{' · agent mode' if settings.agent_mode else ''}\n"
        "Commands: [dim].load <file>[/dim] - new bot definition  |  "
        "[dim].reset[/dim] - clear history  |  "
        "[dim].exit[/dim] - quit",
        box=box.ROUNDED,
    ))

    while True:
        try:
            line = console.input("> ")
        except (EOFError, KeyboardInterrupt):
            line = None

        try:
            if not controller.handle_line(line):
                break
        except TurnError as e:
            logging.getLogger("clmi").exception("%s", e)
            sys.exit(1)


if __name__ == "__main__":
    main()
