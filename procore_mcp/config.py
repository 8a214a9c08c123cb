import os
import json
from typing import Optional, List, Dict, Any
from pydantic import BaseModel

CREDENTIAL_SOURCES = ("static", "header")

class ProcoreConfig(BaseModel):
    base_url: str = "https://sandbox.procore.com/rest/v1.0"
    bearer_token: str = ""
    company_id: Optional[str] = None
    user_id: Optional[str] = None

class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8788
    public_url: str = "http://localhost:8788"
    # "static": configured token for every request, "header": Authorization per request
    credential_source: str = "static"
    log_level: str = "INFO"

class Config(BaseModel):
    procore: ProcoreConfig = ProcoreConfig()
    allowed_origins: Optional[List[str]] = None
    server: ServerConfig = ServerConfig()

    @classmethod
    def load(cls, config_path: str = "config.json") -> "Config":
        data: Dict[str, Any] = {}
        if not os.path.exists(config_path):
            # Look in the repository root when started from elsewhere
            parent_config = os.path.join(os.path.dirname(os.path.dirname(__file__)), "config.json")
            if os.path.exists(parent_config):
                config_path = parent_config
            else:
                config_path = None

        if config_path:
            with open(config_path, "r") as f:
                data = json.load(f)

        # Handle env var overrides
        procore_data = data.get("procore", {})
        procore_data["base_url"] = os.getenv("PROCORE_BASE_URL", procore_data.get("base_url", ProcoreConfig().base_url))
        procore_data["bearer_token"] = os.getenv("PROCORE_BEARER_TOKEN", procore_data.get("bearer_token", ""))
        procore_data["company_id"] = os.getenv("PROCORE_COMPANY_ID", procore_data.get("company_id"))
        procore_data["user_id"] = os.getenv("PROCORE_USER_ID", procore_data.get("user_id"))

        server_data = data.get("server", {})
        server_data["host"] = os.getenv("MCP_HOST", server_data.get("host", "0.0.0.0"))
        server_data["port"] = int(os.getenv("MCP_PORT", server_data.get("port", 8788)))
        server_data["public_url"] = os.getenv("MCP_PUBLIC_URL", server_data.get("public_url", ServerConfig().public_url))
        server_data["credential_source"] = os.getenv("MCP_CREDENTIAL_SOURCE", server_data.get("credential_source", "static"))
        server_data["log_level"] = os.getenv("MCP_LOG_LEVEL", server_data.get("log_level", "INFO"))

        if server_data["credential_source"] not in CREDENTIAL_SOURCES:
            raise ValueError(
                f"Unknown credential_source '{server_data['credential_source']}', expected one of {CREDENTIAL_SOURCES}"
            )

        data["procore"] = procore_data
        data["server"] = server_data
        return cls(**data)

    def mask_secrets(self) -> Dict[str, Any]:
        """Return a dict representation with secrets masked for logging."""
        d = self.model_dump()
        if d.get("procore", {}).get("bearer_token"):
            d["procore"]["bearer_token"] = "***"
        return d

# Global config instance
config = Config.load()
