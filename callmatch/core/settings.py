from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = Field(default="callmatch", alias="APP_NAME")
    app_env: str = Field(default="local", alias="APP_ENV")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Cal.com record source / mutation collaborator
    calcom_api_key: str | None = Field(default=None, alias="CALCOM_API_KEY")
    calcom_base_url: str = Field(default="https://api.cal.com", alias="CALCOM_BASE_URL")
    calcom_api_version: str = Field(default="2024-08-13", alias="CALCOM_API_VERSION")
    calcom_timeout_s: float = Field(default=15.0, alias="CALCOM_TIMEOUT_S")
    calcom_page_size: int = Field(default=100, ge=1, alias="CALCOM_PAGE_SIZE")
    calcom_max_pages: int = Field(default=20, ge=1, alias="CALCOM_MAX_PAGES")

    # Matching behaviour
    require_dob: bool = Field(default=False, alias="REQUIRE_DOB")
    auto_resolve: bool = Field(default=False, alias="AUTO_RESOLVE")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
