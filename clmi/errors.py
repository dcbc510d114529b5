"""Exception types raised by the chat client."""


class ClmiError(Exception):
    """Base class for all clmi errors."""


class BotDefinitionError(ClmiError):
    """A bot definition file could not be read, validated or compiled."""


class ToolExchangeError(ClmiError):
    """Tool calls and tool results are out of order or unpaired."""


class TurnError(ClmiError):
    """A chat turn failed; the session cannot continue."""
