"""Tools the agent-mode assistant may call."""

from __future__ import annotations

import ast
import operator
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any


class Tool(ABC):
    """
    A function the model can call mid-turn.

    Subclasses set ``name``, ``description`` and ``input_schema`` as class
    attributes; ``execute`` receives the decoded call arguments as keywords
    and returns the text sent back in the tool-result message.
    """

    name: str = ""
    description: str = ""
    input_schema: dict = {"type": "object", "properties": {}, "required": []}

    @abstractmethod
    def execute(self, **kwargs) -> str:
        ...

    def to_openai_tool(self) -> dict:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }


class CurrentTimeTool(Tool):
    name = "current_time"
    description = "Get the current date and time in UTC (ISO 8601)."

    def execute(self, **kwargs) -> str:
        return datetime.now(timezone.utc).isoformat(timespec="seconds")


_BIN_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}
_UNARY_OPS = {ast.UAdd: operator.pos, ast.USub: operator.neg}


def _evaluate(node: ast.AST) -> Any:
    if isinstance(node, ast.Expression):
        return _evaluate(node.body)
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _BIN_OPS:
        if isinstance(node.op, ast.Pow) and abs(_evaluate(node.right)) > 100:
            raise ValueError("exponent too large")
        return _BIN_OPS[type(node.op)](_evaluate(node.left), _evaluate(node.right))
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_evaluate(node.operand))
    raise ValueError(f"unsupported expression: {ast.dump(node)[:60]}")


class CalculatorTool(Tool):
    name = "calculator"
    description = "Evaluate an arithmetic expression (+ - * / // % ** and parentheses)."
    input_schema = {
        "type": "object",
        "properties": {
            "expression": {"type": "string", "description": "e.g. '(3 + 4) * 2'"},
        },
        "required": ["expression"],
    }

    def execute(self, expression: str = "", **kwargs) -> str:
        return str(_evaluate(ast.parse(expression, mode="eval")))


class ToolRegistry:
    """Name-indexed set of tools with error-tolerant execution."""

    def __init__(self, tools: list[Tool] | None = None):
        self._tools: dict[str, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool):
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def all_tools(self) -> list[Tool]:
        return list(self._tools.values())

    def openai_tools(self) -> list[dict]:
        """Return all tools formatted for the chat-completions tools parameter."""
        return [t.to_openai_tool() for t in self._tools.values()]

    def execute(self, tool_name: str, inputs: dict) -> str:
        tool = self.get(tool_name)
        if not tool:
            return f"Unknown tool: {tool_name}"
        try:
            return tool.execute(**inputs)
        except Exception as e:
            return f"Tool error ({tool_name}): {e}"


def default_registry() -> ToolRegistry:
    return ToolRegistry([CurrentTimeTool(), CalculatorTool()])
