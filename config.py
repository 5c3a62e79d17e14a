"""Configuration settings for the skill validator."""

from dotenv import load_dotenv

from pydantic_settings import BaseSettings
from pydantic import Field

# Load .env into os.environ before settings are read
load_dotenv()


class Settings(BaseSettings):
    """Global settings for the skill validator.

    Settings can be overridden via environment variables with SKILL_VALIDATOR_ prefix.
    Example: SKILL_VALIDATOR_LOG_LEVEL=DEBUG

    Validation semantics (enum domains, thresholds, the readiness rule) are
    fixed in code, not configured here.
    """

    # CLI output
    log_level: str = Field(
        default="WARNING",
        description="Log level for the CLI's stderr sink"
    )
    output_format: str = Field(
        default="text",
        pattern="^(text|json)$",
        description="Default CLI output format: text or json"
    )
    fail_on_warnings: bool = Field(
        default=False,
        description="Exit non-zero when a document has warnings"
    )

    # Graph checks
    max_cycle_reports: int = Field(
        default=50,
        ge=1,
        description="Maximum cycle issues reported per workflow or handoff graph"
    )

    model_config = {
        "env_prefix": "SKILL_VALIDATOR_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",  # ignore unrelated env vars
    }


# Create singleton instance
settings = Settings()
