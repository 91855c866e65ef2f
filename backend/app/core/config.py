# 环境变量和配置
# pydantic‑settings 读取 .env = core/config.py

from typing import Optional
from pydantic import SecretStr, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# 本机直接跑 uvicorn 时（不走 Docker），才会用到 model_config.env_file=".env"

class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",
        case_sensitive=False,
    )

    # ========= project config =========
    PROJECT_NAME: str = "Listing Hub"
    ENVIRONMENT: str = "dev"
    API_PREFIX: str = "/api/v1"
    BACKEND_CORS_ORIGINS: str = "http://localhost:5173"
    # 对外可访问的地址：OAuth redirect_uri 与 webhook 回调都基于它拼接
    APP_BASE_URL: str = Field("http://localhost:8000", alias="APP_BASE_URL")


    # ========= Database =========
    DATABASE_URL: str = Field(
        default="postgresql+psycopg://listing_user:listing_pass@db:5432/listing_dev",
        alias="DATABASE_URL",
    )
    DB_AUTO_CREATE_TABLES: bool = Field(True, alias="DB_AUTO_CREATE_TABLES")   # 首次取 session 时 create_all（幂等）


    # ========= Shopify App / OAuth =========
    SHOPIFY_CLIENT_ID: Optional[str] = Field(None, alias="SHOPIFY_CLIENT_ID")
    SHOPIFY_CLIENT_SECRET: Optional[SecretStr] = Field(None, alias="SHOPIFY_CLIENT_SECRET")
    SHOPIFY_API_VERSION: str = Field("2023-10", alias="SHOPIFY_API_VERSION")
    SHOPIFY_SCOPES: str = Field(
        "read_products,write_products,read_inventory,write_inventory,read_shop",
        alias="SHOPIFY_SCOPES",
    )
    # webhook 配置：为空时跳过 HMAC 校验（会打 warning）
    SHOPIFY_WEBHOOK_SECRET: Optional[str] = Field(None, alias="SHOPIFY_WEBHOOK_SECRET")

    # 网络/HTTP 层 配置
    SHOPIFY_HTTP_TIMEOUT: int = Field(30, alias="SHOPIFY_HTTP_TIMEOUT")
    SHOPIFY_HTTP_RETRIES: int = Field(3, alias="SHOPIFY_HTTP_RETRIES")
    SHOPIFY_HTTP_BACKOFF_MS: int = Field(200, alias="SHOPIFY_HTTP_BACKOFF_MS")
    SHOPIFY_SYNC_MAX_PAGES: int = Field(10, ge=1, le=100, alias="SHOPIFY_SYNC_MAX_PAGES")


    # ========= LLM (OpenRouter) =========
    OPENROUTER_API_KEY: Optional[SecretStr] = Field(None, alias="OPENROUTER_API_KEY")
    OPENROUTER_MODEL: Optional[str] = Field(None, alias="OPENROUTER_MODEL")
    OPENROUTER_BASE_URL: str = Field(
        "https://openrouter.ai/api/v1/chat/completions",
        alias="OPENROUTER_BASE_URL",
    )
    LLM_HTTP_TIMEOUT: int = Field(30, alias="LLM_HTTP_TIMEOUT")


    # ========= Object storage (image upload) =========
    STORAGE_URL: Optional[str] = Field(None, alias="STORAGE_URL")
    STORAGE_KEY: Optional[SecretStr] = Field(None, alias="STORAGE_KEY")
    STORAGE_BUCKET: str = Field("product-images", alias="STORAGE_BUCKET")
    PLACEHOLDER_IMAGE_URL: str = Field(
        "https://via.placeholder.com/800x800.png?text=Product",
        alias="PLACEHOLDER_IMAGE_URL",
    )


    @property
    def sqlalchemy_database_url(self) -> str:
        # Heroku/Supabase 风格的 postgres:// 统一改成 psycopg 驱动
        url = self.DATABASE_URL
        for prefix in ("postgres://", "postgresql://"):
            if url.startswith(prefix):
                return "postgresql+psycopg://" + url[len(prefix):]
        return url


def secret_value(value) -> Optional[str]:
    """SecretStr / str / None 统一取明文。"""
    if value is None:
        return None
    if hasattr(value, "get_secret_value"):
        value = value.get_secret_value()
    return value or None


settings = Settings()  # 只从环境读取（含 .env）
