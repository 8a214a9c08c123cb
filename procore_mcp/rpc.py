"""
JSON-RPC 2.0 dispatcher for the MCP methods served by this gateway.

The dispatcher is stateless: every call gets the raw request body and a
ToolRegistry already bound to the caller's credentials.
"""
import json
import math
import logging
from typing import Any, Dict, Optional, Union

from procore_mcp.core.mcp_types import ToolError
from procore_mcp.tools.registry import ToolRegistry
# Import tools to register them
import procore_mcp.tools.procore_tools

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "Procore MCP Server"
SERVER_VERSION = "1.0.0"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

class JsonRpcError(Exception):
    def __init__(self, code, message, data=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self):
        error = {"code": self.code, "message": self.message}
        if self.data:
            error["data"] = self.data
        return error

def jsonrpc_response(request_id: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}

def jsonrpc_error(request_id: Any, error: Union[JsonRpcError, ToolError]) -> Dict[str, Any]:
    payload = error.to_dict() if isinstance(error, JsonRpcError) else error.model_dump()
    return {"jsonrpc": "2.0", "id": request_id, "error": payload}

def server_info() -> Dict[str, Any]:
    return {
        'protocolVersion': PROTOCOL_VERSION,
        'capabilities': {
            'tools': {}
        },
        'serverInfo': {
            'name': SERVER_NAME,
            'version': SERVER_VERSION
        }
    }

async def call_tool(registry: ToolRegistry, params: Dict[str, Any]) -> Dict[str, Any]:
    tool_name = params.get('name')
    if not tool_name or not isinstance(tool_name, str):
        raise JsonRpcError(METHOD_NOT_FOUND, "Method not found")

    tool = registry.find(tool_name)
    if tool is None:
        raise JsonRpcError(METHOD_NOT_FOUND, f"Tool not found: {tool_name}")

    arguments = params.get('arguments')
    if arguments is None:
        arguments = {}
    elif not isinstance(arguments, dict):
        raise JsonRpcError(INVALID_PARAMS, "Invalid params: arguments must be an object")

    try:
        result = await tool.execute(arguments)
    except Exception as e:
        logger.exception(f"Tool {tool_name} failed")
        raise JsonRpcError(INTERNAL_ERROR, f"Internal error: {e}") from e

    if isinstance(result, ToolError):
        raise JsonRpcError(result.code, result.message)
    return result.model_dump(exclude_none=True)

async def handle_rpc_request(rpc: Dict[str, Any], registry: ToolRegistry) -> Optional[Dict[str, Any]]:
    """Returns the JSON-RPC result for one request, None for notifications."""
    method = rpc.get('method')
    params = rpc.get('params')
    if not isinstance(params, dict):
        params = {}

    if method == 'initialize':
        return server_info()
    elif method == 'notifications/initialized':
        # Client initialized, no response body
        return None
    elif method == 'ping':
        return {}
    elif method == 'tools/list':
        return {
            'tools': [d.model_dump(exclude_none=True) for d in registry.list()]
        }
    elif method == 'tools/call':
        return await call_tool(registry, params)
    else:
        raise JsonRpcError(METHOD_NOT_FOUND, "Method not found")

def _reject_constant(name: str):
    # NaN and Infinity are not JSON
    raise ValueError(f"Invalid JSON constant: {name}")

def _parse_finite_float(text: str) -> float:
    value = float(text)
    if math.isinf(value):
        raise ValueError(f"Number out of range: {text}")
    return value

async def dispatch(body: Union[bytes, str], registry: ToolRegistry) -> Optional[Dict[str, Any]]:
    """
    Runs one JSON-RPC exchange and returns the response envelope.

    None means the request was a notification and the transport should answer
    with 204 No Content.
    """
    try:
        rpc_message = json.loads(body, parse_constant=_reject_constant, parse_float=_parse_finite_float)
    except ValueError:
        return jsonrpc_error(None, JsonRpcError(PARSE_ERROR, "Parse error"))

    if not isinstance(rpc_message, dict):
        return jsonrpc_error(None, JsonRpcError(INVALID_REQUEST, "Invalid Request"))

    request_id = rpc_message.get('id')
    try:
        result = await handle_rpc_request(rpc_message, registry)
    except JsonRpcError as e:
        logger.info(f"JSON-RPC error {e.code} for method {rpc_message.get('method')}: {e.message}")
        return jsonrpc_error(request_id, e)

    if result is None:
        return None
    return jsonrpc_response(request_id, result)
