from typing import Optional
from pydantic import BaseModel, ConfigDict

from procore_mcp.config import Config

class ExecutionContext(BaseModel):
    """
    Per-request credentials handed to every tool and to the Procore client.
    """
    model_config = ConfigDict(frozen=True)

    bearer_token: str
    company_id: Optional[str] = None
    user_id: Optional[str] = None

    @classmethod
    def from_config(cls, cfg: Config) -> "ExecutionContext":
        return cls(
            bearer_token=cfg.procore.bearer_token,
            company_id=cfg.procore.company_id or None,
            user_id=cfg.procore.user_id or None,
        )

    def __repr__(self) -> str:
        # Keep tokens out of logs and tracebacks
        return f"ExecutionContext(company_id={self.company_id!r}, user_id={self.user_id!r})"
