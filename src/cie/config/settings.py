"""Application settings loaded from environment."""

from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strongly typed settings for complaint intake."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    pghost: Optional[str] = Field(default=None, alias="PGHOST")
    pgport: int = Field(default=5432, alias="PGPORT")
    pguser: Optional[str] = Field(default=None, alias="PGUSER")
    pgpassword: Optional[str] = Field(default=None, alias="PGPASSWORD")
    pgdatabase: Optional[str] = Field(default=None, alias="PGDATABASE")
    db_connect_timeout_seconds: int = Field(default=10, alias="DB_CONNECT_TIMEOUT_SECONDS")

    # Intake policy
    duplicate_radius_meters: float = Field(default=100.0, gt=0, alias="DUPLICATE_RADIUS_METERS")
    density_radius_meters: float = Field(default=250.0, gt=0, alias="DENSITY_RADIUS_METERS")
    high_priority_threshold: int = Field(default=6, ge=0, alias="HIGH_PRIORITY_THRESHOLD")
    medium_priority_threshold: int = Field(default=3, ge=0, alias="MEDIUM_PRIORITY_THRESHOLD")
    intake_cell_degrees: float = Field(default=0.01, gt=0, le=1, alias="INTAKE_CELL_DEGREES")

    # Runtime
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @model_validator(mode="after")
    def _check_policy(self) -> "Settings":
        if self.medium_priority_threshold > self.high_priority_threshold:
            raise ValueError(
                "MEDIUM_PRIORITY_THRESHOLD must not exceed HIGH_PRIORITY_THRESHOLD"
            )
        cells = 360.0 / self.intake_cell_degrees
        if abs(cells - round(cells)) > 1e-6:
            raise ValueError("INTAKE_CELL_DEGREES must divide 360 evenly")
        return self

    def get_database_url(self) -> str:
        """Return a usable database URL or raise."""
        if self.database_url:
            return self.database_url

        if all([self.pghost, self.pguser, self.pgpassword, self.pgdatabase]):
            return (
                "postgresql://"
                f"{self.pguser}:{self.pgpassword}@{self.pghost}:{self.pgport}/"
                f"{self.pgdatabase}"
            )

        raise ValueError("DATABASE_URL or PG* env vars must be set")
