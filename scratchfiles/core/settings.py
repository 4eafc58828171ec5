from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
        env_nested_delimiter="__"
    )

    app_name: str = "scratchfiles"
    app_version: str = "1.0.0"

    log_dir: str = "./log"
    debug_mode: bool = True

    # Parent of the working directory; empty means the platform temp dir.
    tmp_root: str = ""
    tmp_dir_name: str = "xwiki-tmp"
    tmp_size_threshold: int = Field(default=10000, ge=0)
    tmp_sweep_interval_seconds: float = Field(default=1.0, gt=0)
    tmp_entry_ttl_seconds: float = Field(default=0, ge=0)


settings = Settings()
