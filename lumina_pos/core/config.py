import os

from pydantic import Field
from pydantic_settings import BaseSettings

# Ruta absoluta al .db (raíz del proyecto)
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, os.pardir))
DB_FILE = os.path.join(BASE_DIR, "lumina_pos.db")
ABS_URL = "sqlite:///" + DB_FILE.replace("\\", "/")


class Settings(BaseSettings):
    app_name: str = Field(default="Lumina POS", alias="APP_NAME")
    app_env: str = Field(default="dev", alias="APP_ENV")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    database_url: str = Field(default=ABS_URL, alias="DB_URL")
    store_backend: str = Field(default="sql", alias="STORE_BACKEND")  # sql | memory
    store_name: str = Field(default="Lumina Store", alias="STORE_NAME")
    currency: str = Field(default="S/", alias="CURRENCY")
    tax_rate: float = Field(default=0.18, alias="TAX_RATE")
    prices_include_tax: bool = Field(default=True, alias="PRICES_INCLUDE_TAX")
    payment_epsilon: float = Field(default=0.01, alias="PAYMENT_EPSILON")
    low_stock_threshold: int = Field(default=10, alias="LOW_STOCK_THRESHOLD")
    inventory_wait_seconds: float = Field(default=2.0, alias="INVENTORY_WAIT_SECONDS")
    audit_dir: str = Field(default="data", alias="AUDIT_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    class Config:
        env_file = ".env"
        populate_by_name = True


settings = Settings()
