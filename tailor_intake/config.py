"""
Configuration management for the tailoring order-intake service.
Loads settings from environment variables with validation.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    base_dir: Path = Path(__file__).parent.parent
    data_dir: Path = Path(__file__).parent.parent / "data"

    # Telegram
    telegram_bot_token: Optional[str] = Field(
        default=None, description="Telegram Bot API token"
    )

    # Order service (backend that persists orders and renders invoices)
    order_service_url: str = Field(
        default="http://localhost:3000", description="Order service base URL"
    )
    orders_endpoint: str = Field(
        default="/api/orders", description="Order submission endpoint"
    )
    admin_orders_endpoint: str = Field(
        default="/api/admin/orders", description="Persisted orders listing endpoint"
    )
    invoice_endpoint: str = Field(
        default="/api/proxy-pdf", description="Invoice fetch/generate endpoint"
    )

    # Submission
    submission_timeout_seconds: float = Field(
        default=300.0, description="Upper bound for one order submission"
    )
    progress_phase_offsets: list[float] = Field(
        default=[2.0, 4.0, 7.0],
        description="Seconds after which the progress display advances a phase",
    )

    # Order rules
    min_delivery_days: int = Field(
        default=3, description="Minimum days between today and delivery"
    )

    # Snapshot storage
    snapshot_slot: str = Field(
        default="orderFormState", description="Name of the wizard snapshot slot"
    )
    database_url: Optional[str] = Field(
        default=None,
        description="Database connection URL",
    )

    # Shop contacts
    support_phone: str = Field(
        default="+91 98765 43210", description="Phone shown for support"
    )
    support_email: str = Field(
        default="orders@example-tailors.in", description="Email shown for support"
    )

    # Debug
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def db_url(self) -> str:
        """Get database URL with absolute path."""
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{self.data_dir / 'tailor_intake.db'}"

    @property
    def exports_dir(self) -> Path:
        """Directory for spreadsheet exports."""
        return self.data_dir / "exports"


# Global settings instance
settings = Settings()
