"""Configuration loader and validation for reconciliation settings."""

from pathlib import Path
from typing import Any, Optional
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_STOP_WORDS = [
    "srl",
    "sa",
    "impex",
    "com",
    "prod",
    "serv",
    "grup",
    "group",
    "companie",
    "company",
    "institut",
    "institutul",
    "national",
    "nazionale",
    "de",
    "pentru",
    "si",
    "cu",
    "in",
    "la",
    "pe",
    "din",
    "prin",
    "dezvoltare",
    "cercetare",
]


class SourceConfig(BaseModel):
    """Column layout of one side of a fixed-schema reconciliation."""

    label: str
    strip_country_prefix: bool = True
    column_mappings: dict[str, str] = Field(
        default_factory=lambda: {
            "invoice_number": "Invoice Number",
            "issue_date": "Issue Date",
            "counterparty_name": "Counterparty",
            "counterparty_tax_id": "Tax ID",
            "vat_rate": "VAT Rate",
            "vat_base": "VAT Base",
        }
    )


class InputConfig(BaseModel):
    """Configuration for reading source files."""

    encoding: str = "utf-8"
    csv_delimiters: list[str] = Field(default_factory=lambda: [",", ";", "|", "\t"])
    sheet: Optional[str] = None
    left: SourceConfig = Field(default_factory=lambda: SourceConfig(label="Left"))
    right: SourceConfig = Field(default_factory=lambda: SourceConfig(label="Right"))


class FallbackScoring(BaseModel):
    """Weights and windows for the invoice-number-only fallback phase."""

    date_exact_weight: float = 0.4
    date_near_weight: float = 0.2
    date_window_days: int = 7
    amount_exact_weight: float = 0.4
    amount_near_weight: float = 0.2
    amount_tolerance_percent: float = 5.0
    vat_rate_weight: float = 0.2
    min_score: float = 0.5


class GenericMatching(BaseModel):
    """Settings for schema-agnostic greedy matching."""

    min_score: float = 0.5
    edit_similarity_threshold: float = 0.8
    edit_min_length: int = 3


class CompanyMatching(BaseModel):
    """Settings for flexible company name comparison."""

    token_ratio: float = 0.7
    min_token_length: int = 3
    stop_words: list[str] = Field(default_factory=lambda: list(DEFAULT_STOP_WORDS))


class MatchingConfig(BaseModel):
    """Configuration for matching engine."""

    key_separator: str = "|"
    numeric_tolerance: float = 0.01
    fallback: FallbackScoring = Field(default_factory=FallbackScoring)
    generic: GenericMatching = Field(default_factory=GenericMatching)
    company: CompanyMatching = Field(default_factory=CompanyMatching)


class ExcelOutputConfig(BaseModel):
    """Configuration for Excel output."""

    filename_template: str = "reconciliation_report_{date}_{time}.xlsx"


class SheetConfig(BaseModel):
    """Configuration for a report sheet."""

    enabled: bool = True
    name: str


class SheetsConfig(BaseModel):
    """Configuration for all report sheets."""

    summary: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Summary"))
    details: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Details"))


class OutputConfig(BaseModel):
    """Configuration for output."""

    excel: ExcelOutputConfig = Field(default_factory=ExcelOutputConfig)
    sheets: SheetsConfig = Field(default_factory=SheetsConfig)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


class ReconConfig(BaseModel):
    """Main configuration model for reconciliation."""

    input: InputConfig = Field(default_factory=InputConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a plain dictionary."""
    return ReconConfig().model_dump(exclude={"config_file_path"})


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file is not valid YAML or holds invalid values
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(
                f"Configuration root in {config_path} must be a mapping"
            )

        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return ReconConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    yaml_content = """# Invoice reconciliation configuration
# column_mappings map canonical invoice fields to the headers of each source

"""
    yaml_content += yaml.safe_dump(
        get_default_config(), default_flow_style=False, sort_keys=False, allow_unicode=True
    )

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
