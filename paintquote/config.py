from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./paintquote.db"
    APP_NAME: str = "Paint Quote Engine"

    # Organization defaults used when a request does not supply its own
    DEFAULT_ORG_ID: str = "default"
    DEFAULT_TAX_RATE: float = 0.0          # fraction, 0.0825 = 8.25%
    DEFAULT_COVERAGE_SQFT_PER_GAL: float = 350.0

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    class Config:
        env_file = ".env"


settings = Settings()
