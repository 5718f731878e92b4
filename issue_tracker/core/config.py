from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from functools import lru_cache
from typing import List, Union, Any
import json

class Settings(BaseSettings):
    # Document store connection string
    database_url: str = Field(default="sqlite+aiosqlite:///./issues.db", alias="DATABASE_URL")

    # Allow a JSON list or a comma/semicolon separated string in .env (e.g. FRONTEND_ORIGINS=http://localhost:5173,https://acme.com)
    frontend_origins: Union[str, List[str]] = Field(default_factory=list, alias="FRONTEND_ORIGINS")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=3000, alias="PORT")

    @field_validator("frontend_origins", mode="before")
    @classmethod
    def _parse_frontend_origins(cls, v: Any):
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("[") and s.endswith("]"):
                return json.loads(s)
            return [p.strip() for p in s.replace(";", ",").split(",") if p.strip()]
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        populate_by_name = True
        extra = "ignore"

@lru_cache
def get_settings() -> Settings:
    return Settings()
