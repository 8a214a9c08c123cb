import httpx
from typing import Any, Dict, Optional
from procore_mcp.config import config
from procore_mcp.core.context import ExecutionContext
import logging

logger = logging.getLogger(__name__)

COMPANY_HEADER = "Procore-Company-Id"

class ProcoreApiError(Exception):
    """Non-2xx response from the Procore REST API."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Procore API error ({status_code}): {body}")

def build_headers(context: ExecutionContext) -> Dict[str, str]:
    headers = {
        "Authorization": f"Bearer {context.bearer_token}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
    if context.company_id:
        headers[COMPANY_HEADER] = context.company_id
    return headers

async def procore_request(
    endpoint: str,
    context: ExecutionContext,
    method: str = "GET",
    body: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Any:
    """
    Sends one request to the Procore API and returns the decoded JSON body.

    Raises ProcoreApiError on a non-2xx status; network errors (httpx.HTTPError)
    and JSON decoding errors propagate unchanged.
    """
    url = f"{config.procore.base_url}{endpoint}"
    request_headers = build_headers(context)
    if headers:
        request_headers.update(headers)

    async with httpx.AsyncClient() as client:
        response = await client.request(
            method=method,
            url=url,
            headers=request_headers,
            json=body,
        )

    if not response.is_success:
        raise ProcoreApiError(response.status_code, response.text)

    return response.json()

async def is_valid_token(bearer_token: str) -> bool:
    """
    Checks a bearer token against the /me endpoint. Never raises.
    """
    try:
        await procore_request("/me", ExecutionContext(bearer_token=bearer_token))
        return True
    except Exception as e:
        logger.warning(f"Bearer token validation failed: {e}")
        return False
