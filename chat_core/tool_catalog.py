"""Static registry of callable tools with declared parameter schemas."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import DuplicateToolError, InvalidArguments, ToolError, ToolExecutionError, ToolNotFound


logger = logging.getLogger("Tool-Catalog")

MAX_RESULT_CHARS = 50000

PARAMETER_TYPES = {"string", "integer", "number", "boolean"}

_TRUE_TOKENS = {"true", "1", "yes", "y", "on"}
_FALSE_TOKENS = {"false", "0", "no", "n", "off"}


class _Required:
    def __repr__(self) -> str:
        return "REQUIRED"


REQUIRED = _Required()


@dataclass(frozen = True)
class ParameterSpec:
    """One named, typed parameter of a tool."""

    name: str
    type: str = "string"
    description: str = ""
    default: Any = REQUIRED

    def __post_init__(self):
        if self.type not in PARAMETER_TYPES:
            raise ValueError(f"Unsupported parameter type for '{self.name}': {self.type}")

    @property
    def required(self) -> bool:
        return self.default is REQUIRED


@dataclass(frozen = True)
class ToolDescriptor:
    """Tool name, description, ordered parameters and handler."""

    name: str
    description: str
    parameters: Tuple[ParameterSpec, ...] = ()
    handler: Optional[Callable[..., Any]] = field(default = None, compare = False, repr = False)

    def to_schema(self) -> Dict[str, Any]:
        """Render the OpenAI function-calling schema; the handler is left out."""
        properties = {}
        for parameter in self.parameters:
            prop: Dict[str, Any] = {"type": parameter.type}
            if parameter.description:
                prop["description"] = parameter.description
            if not parameter.required and parameter.default is not None:
                prop["default"] = parameter.default
            properties[parameter.name] = prop

        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": properties,
                    "required": [parameter.name for parameter in self.parameters if parameter.required],
                },
            },
        }


@dataclass
class ToolResult:
    """Outcome of one invocation: a payload or a typed tool error."""

    tool_name: str
    payload: Any = None
    error: Optional[ToolError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_text(self) -> str:
        """Serialize for inclusion in a tool-role message."""
        if self.error is not None:
            text = json.dumps(
                {"error": self.error.message, "error_type": self.error.error_type},
                ensure_ascii = False,
            )
        elif isinstance(self.payload, str):
            text = self.payload
        else:
            text = json.dumps(self.payload, ensure_ascii = False, default = str)
        return text[:MAX_RESULT_CHARS]


def tool(
    name: str,
    description: str,
    handler: Callable[..., Any],
    parameters: Optional[List[ParameterSpec]] = None,
) -> ToolDescriptor:
    """Build a descriptor for a callable invoked as `handler(**arguments)`."""
    return ToolDescriptor(
        name = name,
        description = description,
        parameters = tuple(parameters or ()),
        handler = handler,
    )


class ToolCatalog:
    """Name-keyed tool registry. Descriptors are read-only once registered."""

    def __init__(self, descriptors: Optional[List[ToolDescriptor]] = None):
        self._tools: Dict[str, ToolDescriptor] = {}
        for descriptor in descriptors or []:
            self.register(descriptor)

    def register(self, descriptor: ToolDescriptor) -> None:
        if descriptor.name in self._tools:
            raise DuplicateToolError(descriptor.name)
        if descriptor.handler is None:
            raise ValueError(f"Tool '{descriptor.name}' has no handler")
        self._tools[descriptor.name] = descriptor
        logger.debug(f"Registered tool: {descriptor.name}")

    def resolve(self, name: str) -> Optional[ToolDescriptor]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def schemas(self) -> List[Dict[str, Any]]:
        """Schema descriptors for every tool, in registration order."""
        return [descriptor.to_schema() for descriptor in self._tools.values()]

    def invoke(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        """
        Validate arguments and run the handler.

        Never raises for tool-level problems: unknown tools, invalid
        arguments and handler exceptions all come back as a failed result.
        """
        descriptor = self.resolve(name)
        if descriptor is None:
            logger.warning(f"Tool not found: {name}")
            return ToolResult(tool_name = name, error = ToolNotFound(name))

        try:
            bound = validate_arguments(descriptor, arguments)
        except InvalidArguments as exc:
            logger.warning(f"Invalid arguments for {name}: {exc.message}")
            return ToolResult(tool_name = name, error = exc)

        try:
            payload = descriptor.handler(**bound)
        except Exception as exc:
            logger.warning(f"Tool {name} failed: {exc}")
            return ToolResult(tool_name = name, error = ToolExecutionError(name, exc))

        return ToolResult(tool_name = name, payload = payload)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def validate_arguments(descriptor: ToolDescriptor, arguments: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Check presence, reject unknown names, fill defaults and coerce types."""
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, dict):
        raise InvalidArguments(descriptor.name, "Arguments must be a JSON object")

    known = {parameter.name for parameter in descriptor.parameters}
    unknown = sorted(key for key in arguments if key not in known)
    if unknown:
        raise InvalidArguments(descriptor.name, f"Unknown parameter(s): {', '.join(unknown)}")

    bound = {}
    for parameter in descriptor.parameters:
        if parameter.name not in arguments or arguments[parameter.name] is None:
            if parameter.required:
                raise InvalidArguments(descriptor.name, f"Missing required parameter: {parameter.name}")
            bound[parameter.name] = parameter.default
            continue

        try:
            bound[parameter.name] = _coerce(arguments[parameter.name], parameter.type)
        except (TypeError, ValueError):
            raise InvalidArguments(
                descriptor.name,
                f"Parameter '{parameter.name}' expects {parameter.type}, got {arguments[parameter.name]!r}",
            )
    return bound


def _coerce(value: Any, expected: str) -> Any:
    """Coerce a decoded JSON value to the declared parameter type."""
    if expected == "string":
        if isinstance(value, str):
            return value
        if isinstance(value, (bool, int, float)):
            return str(value).lower() if isinstance(value, bool) else str(value)
        raise TypeError(expected)

    if expected == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in _TRUE_TOKENS:
                return True
            if normalized in _FALSE_TOKENS:
                return False
        raise ValueError(expected)

    if isinstance(value, bool):
        raise TypeError(expected)

    if expected == "integer":
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            return int(value.strip())
        raise TypeError(expected)

    # number
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        return float(value.strip())
    raise TypeError(expected)
