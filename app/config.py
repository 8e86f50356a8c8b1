from pathlib import Path
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

# Load .env from repo root for local development and scripts.
ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(dotenv_path=ENV_PATH)

class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True)
    data_dir: str = Field(default="./data", alias="DATA_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_error_file: str = Field(default="", alias="LOG_ERROR_FILE")
    default_user_id: str = Field(default="demo", alias="DEFAULT_USER_ID")
    default_delta_mode: str = Field(default="absolute", alias="DEFAULT_DELTA_MODE")
    default_license_tier: str = Field(default="free", alias="DEFAULT_LICENSE_TIER")
    result_cache_enabled: int = Field(default=1, alias="RESULT_CACHE_ENABLED")
    result_cache_ttl_seconds: int = Field(default=300, alias="RESULT_CACHE_TTL_SECONDS")
    essential_categories: str = Field(
        default="rent/mortgage,utilities,insurance,food & groceries,transport,council tax,childcare",
        alias="ESSENTIAL_CATEGORIES",
    )
    tax_payment_keywords: str = Field(
        default="hmrc,self assessment,paye,income tax,national insurance,tax payment",
        alias="TAX_PAYMENT_KEYWORDS",
    )
    salary_keywords: str = Field(default="salary", alias="SALARY_KEYWORDS")
    dividend_keywords: str = Field(default="dividend", alias="DIVIDEND_KEYWORDS")
    top_merchants_limit: int = Field(default=8, alias="TOP_MERCHANTS_LIMIT")
    inflation_trend_months: int = Field(default=6, alias="INFLATION_TREND_MONTHS")

settings = Settings()
