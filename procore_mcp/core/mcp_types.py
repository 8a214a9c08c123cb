from typing import Any, Dict, List, Optional
from pydantic import BaseModel

class ToolInputSchema(BaseModel):
    type: str = "object"
    properties: Dict[str, Any]
    required: Optional[List[str]] = None

class ToolDefinition(BaseModel):
    name: str
    description: Optional[str] = None
    inputSchema: ToolInputSchema

class TextContent(BaseModel):
    type: str = "text"
    text: str

class ToolCallResult(BaseModel):
    content: List[TextContent]
    isError: Optional[bool] = False

    @classmethod
    def from_text(cls, text: str, is_error: bool = False) -> "ToolCallResult":
        return cls(content=[TextContent(text=text)], isError=is_error)

class ToolError(BaseModel):
    """Dispatch-level fault returned by a tool, surfaced as the JSON-RPC error."""
    code: int
    message: str
