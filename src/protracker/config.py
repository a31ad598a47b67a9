from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str  # mongodb://host:port/dbname, or memory:// for an in-process store
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    session_secret_key: str  # Signs the session cookie that remembers the access code
    cors_origins: list[str] = []
    workspace_collection: str = "workspaces"
    session_idle_timeout: float = 900.0  # Seconds before an unused live session is closed; 0 keeps sessions open

    model_config = {
        "env_file": [".env"],
        "env_prefix": "PROTRACKER_",
        "extra": "ignore",
    }
