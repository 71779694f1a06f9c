from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "VI_", "env_file": ".env", "env_file_encoding": "utf-8"}

    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console", pattern=r"^(console|json)$")
    max_payload_bytes: int = Field(default=50 * 1024 * 1024, gt=0)
    fallback_encoding: str = Field(default="latin-1")


settings = Settings()
