import json
import logging
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from procore_mcp.config import config
from procore_mcp.core.context import ExecutionContext
from procore_mcp.core.procore_client import COMPANY_HEADER, is_valid_token
from procore_mcp.rpc import SERVER_NAME, SERVER_VERSION, dispatch
from procore_mcp.tools.registry import ToolRegistry

# Configure logging
logging.basicConfig(level=config.server.log_level.upper(), format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

app = FastAPI(title=SERVER_NAME, version=SERVER_VERSION)

# CORS Middleware
origins = config.allowed_origins or ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", COMPANY_HEADER],
    expose_headers=["Content-Type"],
)

class AuthenticationError(Exception):
    def __init__(self, message):
        super().__init__(message)
        self.message = message

@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    return JSONResponse(status_code=401, content={"error": exc.message})

@app.on_event("startup")
async def startup_event():
    logger.info(json.dumps({"event": "config_loaded", "config": config.mask_secrets()}, ensure_ascii=False))

def _bearer_context(request: Request) -> ExecutionContext:
    """Builds the ExecutionContext from the Authorization and company headers."""
    auth_header = request.headers.get("authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthenticationError("Missing or invalid Authorization header. Expected: 'Bearer <token>'")

    bearer_token = auth_header[len("Bearer "):].strip()
    if not bearer_token:
        raise AuthenticationError("Invalid bearer token format")

    return ExecutionContext(
        bearer_token=bearer_token,
        company_id=request.headers.get(COMPANY_HEADER) or None,
    )

def request_context(request: Request) -> ExecutionContext:
    """Resolves the credentials for one RPC request from the configured source."""
    if config.server.credential_source == "header":
        return _bearer_context(request)
    return ExecutionContext.from_config(config)

def _rpc_endpoint() -> str:
    return f"{config.server.public_url.rstrip('/')}/mcp/rpc"

@app.get("/health")
async def health():
    return {"status": "healthy", "service": SERVER_NAME}

@app.get("/mcp")
async def mcp_discovery():
    """Public MCP discovery document"""
    registry = ToolRegistry(ExecutionContext(bearer_token=""))
    return {
        "name": SERVER_NAME,
        "version": SERVER_VERSION,
        "description": "MCP server for Procore API integration",
        "tools": [d.model_dump(exclude_none=True) for d in registry.list()],
        "transport": "http",
        "endpoint": _rpc_endpoint(),
        "authRequired": config.server.credential_source == "header",
    }

@app.get("/mcp/rpc")
async def mcp_rpc_help():
    return {
        "message": "MCP JSON-RPC endpoint",
        "description": "This endpoint accepts POST requests with JSON-RPC 2.0 formatted messages",
        "usage": "POST with Content-Type: application/json",
        "authRequired": config.server.credential_source == "header",
        "example": {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "initialize",
            "params": {}
        }
    }

@app.post("/mcp/rpc")
async def mcp_rpc(request: Request):
    """HTTP POST endpoint for MCP JSON-RPC"""
    context = request_context(request)
    body = await request.body()

    response = await dispatch(body, ToolRegistry(context))
    if response is None:
        return Response(status_code=204)
    return JSONResponse(content=response)

@app.get("/mcp/test")
async def mcp_test(request: Request):
    """Protected diagnostic endpoint; validates the bearer token against Procore."""
    context = _bearer_context(request)
    if not await is_valid_token(context.bearer_token):
        raise AuthenticationError("Invalid or expired bearer token")

    registry = ToolRegistry(context)
    return {
        "message": "MCP endpoint ready for MCP Inspector",
        "availableTools": [d.name for d in registry.list()],
        "mcpEndpoint": f"{config.server.public_url.rstrip('/')}/mcp",
        "rpcEndpoint": _rpc_endpoint(),
        "companyId": context.company_id,
        "instructions": "Use MCP Inspector to connect to this server with the Authorization header"
    }

@app.middleware("http")
async def log_requests(request: Request, call_next):
    client_host = request.client.host if request.client else "-"
    logger.info(f"Access: {request.method} {request.url.path} from {client_host}")
    response = await call_next(request)
    return response

def run():
    import uvicorn
    uvicorn.run(app, host=config.server.host, port=config.server.port)

if __name__ == "__main__":
    run()
