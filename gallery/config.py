from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import List, Literal, Union

class Settings(BaseSettings):
    """Application settings"""
    
    # Environment
    ENVIRONMENT: str = "development"
    
    # Logging
    LOG_LEVEL: str = "INFO"  # INFO for development, WARNING for production
    
    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8081
    
    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:8081",
        "http://127.0.0.1:8081"
    ]
    
    # Arkiv network (both required at startup)
    RPC_URL: str = ""
    ACCOUNT_ADR: str = ""  # Owner address the gallery is scoped to
    RPC_TIMEOUT: float = 30.0  # seconds
    
    # Entity filters shared by every query
    IMAGE_APP: str = "CDogs"
    IMAGE_TYPE: str = "image"
    
    # Anchor cache
    ANCHOR_PROBE_LIMIT: int = 200  # First probe when no anchor is known
    ANCHOR_REFRESH_LIMIT: int = 100  # "Anything newer?" probe
    
    # Pagination
    RANGE_HEADROOM: int = 10  # Extra rows requested per window for id gaps
    DRAIN_PAGE_SIZE: int = 50  # Page size used when loading everything
    DEFAULT_PER_PAGE: int = 100
    DEFAULT_STREAM_PER_PAGE: int = 50
    MAX_PER_PAGE: int = 500
    
    # "reverse" = newest-first windows, "session" = resumable forward cursors
    PAGINATION_MODE: Literal["reverse", "session"] = "reverse"
    
    # Cursor sessions
    DEFAULT_SESSION_LIMIT: int = 50
    SESSION_TTL: int = 300  # seconds (5 minutes)
    SESSION_SWEEP_INTERVAL: int = 60  # seconds
    
    # Image payloads
    IMAGE_CACHE_MAX_AGE: int = 86400  # 1 day
    
    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_comma_separated(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse comma-separated string into list"""
        if isinstance(v, str):
            return [item.strip() for item in v.split(',') if item.strip()]
        return v
    
    def missing_required(self) -> List[str]:
        """Names of required settings that are not configured"""
        return [name for name in ("RPC_URL", "ACCOUNT_ADR") if not getattr(self, name)]
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

settings = Settings()
