import re
import json
import httpx
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union
from procore_mcp.core.context import ExecutionContext
from procore_mcp.core.mcp_types import ToolCallResult, ToolDefinition, ToolError, ToolInputSchema
from procore_mcp.core.procore_client import ProcoreApiError

logger = logging.getLogger(__name__)

INVALID_PARAMS = -32602

# Failures of the downstream call, reported as an isError result.
# ValueError covers JSON and UTF-8 decoding of the response body.
DOWNSTREAM_ERRORS = (ProcoreApiError, httpx.HTTPError, httpx.InvalidURL, ValueError)

ToolHandler = Callable[..., Awaitable[Any]]

_INT_RE = re.compile(r"[+-]?[0-9]+")

@dataclass(frozen=True)
class Param:
    name: str
    description: str
    required: bool = False
    numeric: bool = False
    format: Optional[str] = None

    def schema(self) -> Dict[str, Any]:
        prop = {"type": "string", "description": self.description}
        if self.format:
            prop["format"] = self.format
        return prop

def parse_int(value: Any) -> Optional[int]:
    """
    Parse an integer id from a string, int or integral float, None when it is not one.

    Strings must be an optional sign followed by digits; "12abc" is rejected
    rather than truncated to 12.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if _INT_RE.fullmatch(text):
            return int(text)
    return None

def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())

@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    params: Sequence[Param]
    handler: ToolHandler
    error_message: str

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            inputSchema=ToolInputSchema(
                properties={p.name: p.schema() for p in self.params},
                required=[p.name for p in self.params if p.required],
            ),
        )

    def validate(self, arguments: Dict[str, Any]) -> Union[Dict[str, Any], ToolError]:
        """
        Returns the handler kwargs, or a ToolError for the first bad required param.

        Optional params that are blank or, when numeric, unparseable are dropped.
        """
        values: Dict[str, Any] = {}
        for param in self.params:
            raw = arguments.get(param.name)
            if _is_blank(raw):
                if param.required:
                    return ToolError(code=INVALID_PARAMS, message=f"Missing required parameter: {param.name}")
                continue

            if param.numeric:
                number = parse_int(raw)
                if number is None:
                    if param.required:
                        return ToolError(code=INVALID_PARAMS, message=f"Invalid {param.name}: must be a valid number")
                    continue
                values[param.name] = number
            else:
                values[param.name] = raw if isinstance(raw, str) else str(raw)
        return values

    async def execute(self, context: ExecutionContext, arguments: Dict[str, Any]) -> Union[ToolCallResult, ToolError]:
        validated = self.validate(arguments)
        if isinstance(validated, ToolError):
            return validated

        try:
            data = await self.handler(context, **validated)
        except DOWNSTREAM_ERRORS as e:
            logger.warning(f"Tool {self.name} downstream call failed: {e}")
            return ToolCallResult.from_text(f"{self.error_message}: {e}", is_error=True)

        return ToolCallResult.from_text(json.dumps(data, ensure_ascii=False, indent=2, default=str))

class ToolCatalog:
    """Static set of tools, filled at import time by the register decorator."""

    def __init__(self):
        self._tools: Dict[str, Tool] = {}

    def register(self, name: str, description: str, params: Sequence[Param] = (), error_message: str = "Error"):
        def decorator(func: ToolHandler):
            if name in self._tools:
                raise ValueError(f"Tool '{name}' already registered")
            self._tools[name] = Tool(
                name=name,
                description=description,
                params=tuple(params),
                handler=func,
                error_message=error_message,
            )
            return func
        return decorator

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def tools(self) -> List[Tool]:
        return list(self._tools.values())

class BoundTool:
    """A catalog tool bound to the credentials of one request."""

    def __init__(self, tool: Tool, context: ExecutionContext):
        self.tool = tool
        self.context = context

    @property
    def name(self) -> str:
        return self.tool.name

    def get_definition(self) -> ToolDefinition:
        return self.tool.definition()

    async def execute(self, arguments: Optional[Dict[str, Any]] = None) -> Union[ToolCallResult, ToolError]:
        return await self.tool.execute(self.context, arguments or {})

class ToolRegistry:
    """Per-request view of the catalog, bound to one ExecutionContext."""

    def __init__(self, context: ExecutionContext, tool_catalog: Optional[ToolCatalog] = None):
        self.context = context
        self._catalog = tool_catalog if tool_catalog is not None else catalog

    def list(self) -> List[ToolDefinition]:
        return [t.definition() for t in self._catalog.tools()]

    def find(self, name: str) -> Optional[BoundTool]:
        tool = self._catalog.get(name)
        if tool is None:
            return None
        return BoundTool(tool, self.context)

    def has(self, name: str) -> bool:
        return self._catalog.get(name) is not None

catalog = ToolCatalog()
