"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Catalog locations default to the tables shipped with the package
"""

import logging
import os
from functools import lru_cache
from typing import Literal, cast

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()


class CatalogConfig(BaseModel):
    """Locations of the rule, protocol and hospital tables."""

    rules_path: str | None = Field(
        default=None, description="Rule table JSON (defaults to the packaged catalog)"
    )
    protocols_path: str | None = Field(
        default=None, description="Protocol table JSON (defaults to the packaged catalog)"
    )
    hospitals_path: str | None = Field(
        default=None, description="Hospital table JSON (defaults to the packaged directory)"
    )


class EngineConfig(BaseModel):
    """Detection engine tuning."""

    ems_escalation_threshold_minutes: int = Field(
        default=5,
        ge=0,
        description="Protocols with an escalation budget at or below this require EMS",
    )
    max_evaluation_workers: int = Field(
        default=1, gt=0, description="Worker threads for rule evaluation (1 = sequential)"
    )


class NotificationConfig(BaseModel):
    """Contact fan-out policy settings."""

    emergency_fanout: int = Field(
        default=2, gt=0, description="Contacts notified for EMERGENCY priority"
    )
    delivery_timeout_seconds: float = Field(
        default=10.0, gt=0.0, description="Upper bound for a single delivery handler call"
    )


class CarePlanConfig(BaseModel):
    """Care-plan adjustment settings."""

    review_window_days: int = Field(
        default=7, gt=0, description="Days between an adjustment taking effect and its review"
    )


class OutcomeConfig(BaseModel):
    """Outcome statistics settings."""

    top_rules_limit: int = Field(
        default=10, gt=0, description="Number of most frequently firing rules to report"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configs
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    care_plan: CarePlanConfig = Field(default_factory=CarePlanConfig)
    outcomes: OutcomeConfig = Field(default_factory=OutcomeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _optional_path(name: str) -> str | None:
        val = os.getenv(name, "").strip()
        return val or None

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    catalog_config = CatalogConfig(
        rules_path=_optional_path("EMERGENCY_RULES_PATH"),
        protocols_path=_optional_path("EMERGENCY_PROTOCOLS_PATH"),
        hospitals_path=_optional_path("HOSPITALS_PATH"),
    )

    engine_config = EngineConfig(
        ems_escalation_threshold_minutes=int(os.getenv("EMS_ESCALATION_MINUTES", "5")),
        max_evaluation_workers=int(os.getenv("RULE_EVALUATION_WORKERS", "1")),
    )

    notification_config = NotificationConfig(
        emergency_fanout=int(os.getenv("EMERGENCY_CONTACT_FANOUT", "2")),
        delivery_timeout_seconds=float(os.getenv("NOTIFICATION_TIMEOUT_SECONDS", "10.0")),
    )

    care_plan_config = CarePlanConfig(
        review_window_days=int(os.getenv("CARE_PLAN_REVIEW_DAYS", "7")),
    )

    outcome_config = OutcomeConfig(
        top_rules_limit=int(os.getenv("OUTCOME_TOP_RULES", "10")),
    )

    # Logging config
    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    # Application config
    return AppConfig(
        environment=environment,
        debug=debug,
        catalog=catalog_config,
        engine=engine_config,
        notifications=notification_config,
        care_plan=care_plan_config,
        outcomes=outcome_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def reset_config_cache() -> None:
    """Drop the cached configuration so the next get_config() re-reads the environment."""
    get_config.cache_clear()


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Configure structlog once for the whole process."""
    config = config or get_config().logging

    logging.basicConfig(format="%(message)s", level=getattr(logging, config.level))

    renderer = (
        structlog.dev.ConsoleRenderer()
        if config.format == "console"
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Development helpers
def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\nCATALOGS")
    print(f"Rules: {config.catalog.rules_path or 'packaged'}")
    print(f"Protocols: {config.catalog.protocols_path or 'packaged'}")
    print(f"Hospitals: {config.catalog.hospitals_path or 'packaged'}")

    print("\nENGINE")
    print(f"EMS Escalation Threshold: {config.engine.ems_escalation_threshold_minutes} min")
    print(f"Evaluation Workers: {config.engine.max_evaluation_workers}")
    print(f"Emergency Fan-out: {config.notifications.emergency_fanout} contacts")
    print(f"Care Plan Review Window: {config.care_plan.review_window_days} days")


if __name__ == "__main__":
    print_config_summary()
