"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import Dict, List

import pendulum
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .domain.calendar_utils import clock_to_minutes
from .domain.exceptions import ConfigurationError
from .domain.models import Service, Window


class WindowConfig(BaseModel):
    """One open window, as HH:MM strings."""
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, value: str) -> str:
        """Ensure the value is a valid HH:MM clock time."""
        clock_to_minutes(value)
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "WindowConfig":
        """Ensure the window opens before it closes."""
        if clock_to_minutes(self.end) <= clock_to_minutes(self.start):
            raise ValueError(f"Window end {self.end} must be later than start {self.start}")
        return self

    def to_window(self) -> Window:
        return Window.from_clock(self.start, self.end)


class ServiceConfig(BaseModel):
    """Service definition."""
    id: str
    name: str
    duration_minutes: int
    slot_grid_minutes: int = 15
    lead_time_minutes: int = 0
    windows: Dict[int, List[WindowConfig]] = Field(default_factory=dict)  # 0=Sunday, 6=Saturday

    @field_validator("duration_minutes", "slot_grid_minutes")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("lead_time_minutes")
    @classmethod
    def validate_lead_time(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    @field_validator("windows")
    @classmethod
    def validate_weekdays(cls, value: Dict[int, List[WindowConfig]]) -> Dict[int, List[WindowConfig]]:
        """Ensure weekdays are in valid range."""
        invalid_days = [day for day in value if day not in range(7)]
        if invalid_days:
            raise ValueError(f"weekdays must be between 0 and 6, got {invalid_days}")
        return value

    def to_service(self) -> Service:
        return Service(
            id=self.id,
            name=self.name,
            duration_minutes=self.duration_minutes,
            slot_grid_minutes=self.slot_grid_minutes,
            lead_time_minutes=self.lead_time_minutes,
            windows={
                day: tuple(window.to_window() for window in windows)
                for day, windows in self.windows.items()
            },
        )


class DefaultsConfig(BaseModel):
    """Default settings for the booking calendar."""
    weeks_ahead: int = 4
    days_per_week: int = 6  # Monday to Saturday
    recurring_weeks: int = 4
    recommendation_limit: int = 4

    @field_validator("weeks_ahead", "recurring_weeks")
    @classmethod
    def validate_weeks(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @field_validator("days_per_week")
    @classmethod
    def validate_days_per_week(cls, value: int) -> int:
        if not 1 <= value <= 7:
            raise ValueError(f"days_per_week must be between 1 and 7, got {value}")
        return value

    @field_validator("recommendation_limit")
    @classmethod
    def validate_recommendation_limit(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "Europe/Berlin"
    data_file: Path = Path("bookings.json")
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    services: List[ServiceConfig] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone '{value}'") from exc
        return value

    @field_validator("services")
    @classmethod
    def validate_services(cls, value: List[ServiceConfig]) -> List[ServiceConfig]:
        """Ensure service ids are unique."""
        seen_ids: set[str] = set()
        for service in value:
            if service.id in seen_ids:
                raise ValueError(f"Duplicate service id detected: {service.id}")
            seen_ids.add(service.id)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigurationError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ConfigurationError("Config file must contain a mapping at the root level.")

        try:
            config = cls(**data)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration in {config_path}:\n{exc}") from exc

        # Relative data files live next to the config file
        if not config.data_file.is_absolute():
            config.data_file = config_path.parent / config.data_file

        return config

    def build_catalog(self) -> Dict[str, Service]:
        """Build the immutable service catalog, keyed by service id."""
        return {service.id: service.to_service() for service in self.services}

    def find_service(self, service_id: str) -> ServiceConfig | None:
        """Find a service by its id (case-insensitive)."""
        for service in self.services:
            if service.id.lower() == service_id.lower():
                return service
        return None


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
