from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List, Optional

class Settings(BaseSettings):
    # App Info
    app_name: str = "Retail POS API"
    version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str
    auto_create_tables: bool = True

    # Security
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440  # 1 day
    bcrypt_rounds: int = Field(default=12, ge=4, le=31, description="bcrypt cost factor")
    allowed_origins: List[str] = ["http://localhost:3000"]

    # Store
    store_name: str = "Retail POS"
    store_address: Optional[str] = None
    store_phone: Optional[str] = None
    currency: str = "LKR"

    # Customers
    loyalty_points_rate: float = Field(
        default=0.01,
        ge=0,
        description="Loyalty points earned per currency unit spent"
    )
    customer_tier_thresholds: Dict[str, float] = Field(
        default={"vip": 500000},
        description="total_spent thresholds that promote a customer to a tier"
    )

    # Document numbers
    sequence_retry_attempts: int = 3

    # Printing
    printer_serial_port: Optional[str] = None
    printer_baudrate: int = 9600
    printer_timeout_seconds: float = 2.0
    system_printer_name: Optional[str] = None
    receipt_output_dir: str = "receipts"
    receipt_width: int = 42

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

settings = Settings()
