"""
FleetRent - Configuration Management
Centralized configuration with environment variable support
"""

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.enums import AttendanceCode


# Get project root
PROJECT_ROOT = Path(__file__).parent.parent


class Settings(BaseSettings):
    """Application settings with validation"""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / '.env'),
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    # Application
    app_name: str = "FleetRent"
    app_version: str = "1.0.0"
    debug: bool = False

    # Database
    database_url: str = "sqlite:///./data/fleetrent.db"

    # Security
    secret_key: str = "fleetrent-default-secret-change-in-production"
    admin_password: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiration_hours: int = 24

    # API server
    api_host: str = "0.0.0.0"
    api_port: int = 5000

    # Logging
    log_level: str = "INFO"
    log_file: str = "./logs/fleetrent.log"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def is_in_memory(self) -> bool:
        return self.is_sqlite and ":memory:" in self.database_url

    @property
    def database_path(self) -> Path:
        """Get database file path"""
        if self.database_url.startswith("sqlite:///") and not self.is_in_memory:
            return Path(self.database_url.replace("sqlite:///", ""))
        return Path("./data/fleetrent.db")


# Global settings instance
settings = Settings()


# Create necessary directories
def ensure_directories():
    """Create required directories if they don't exist"""
    directories = [
        settings.database_path.parent,
        Path(settings.log_file).parent,
    ]
    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


# Attendance codes accepted on a salary sheet
ATTENDANCE_CODES = tuple(c.value for c in AttendanceCode)

# Accidental cover charged on weekly plans when the slab does not name one
DEFAULT_ACCIDENTAL_COVER = 105.0

# Upper bound for per-day rent ledgers (~10 years)
RENT_ENTRY_CAP_DAYS = 3660
