from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    db_path: str = "slush.db"
    debug: bool = False
    timezone: str | None = None
    currency_symbol: str = "$"

    @field_validator("timezone", mode="before")
    @classmethod
    def blank_timezone_is_local(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


settings = Settings()
