"""Rules configuration for the payroll engine.

Each tax year is published as one YAML file, tax_rules/YYYY.yaml, holding the
bracket table, the social security schedule and the deduction policy.

Rules directory resolution:
1. PAYROLL_ENGINE_RULES_PATH environment variable (if set)
2. tax_rules/ bundled with the package

Calculations never read files themselves. They receive a RulesProvider, which
loads a year once and hands out the same immutable TaxYearRules afterwards.
"""

import logging
import os
import threading
from pathlib import Path
from typing import Optional, Protocol

import yaml
from pydantic import ValidationError

from .errors import ConfigurationNotFoundError, InvalidBracketTableError, InvalidRulesError
from .schemas import TaxYearRules
from .taxes.brackets import validate_brackets

logger = logging.getLogger(__name__)

RULES_PATH_ENV = "PAYROLL_ENGINE_RULES_PATH"
LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s: %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging from LOG_LEVEL (DEBUG when verbose)."""
    level_name = "DEBUG" if verbose else os.environ.get("LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )


def get_rules_dir() -> Path:
    """Get the directory holding YYYY.yaml rule files.

    Resolution order:
    1. PAYROLL_ENGINE_RULES_PATH environment variable
    2. tax_rules/ inside the installed package
    """
    env_path = os.environ.get(RULES_PATH_ENV)
    if env_path:
        return Path(env_path)
    return Path(__file__).parent.parent / "tax_rules"


def available_years(rules_dir: Optional[Path] = None) -> list[int]:
    """Get sorted list of published tax years (descending)."""
    rules_dir = rules_dir or get_rules_dir()
    if not rules_dir.is_dir():
        return []
    years = [int(p.stem) for p in rules_dir.glob("*.yaml") if p.stem.isdigit()]
    return sorted(years, reverse=True)


def _first_error_field(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return ""
    return ".".join(str(part) for part in errors[0]["loc"])


def parse_tax_rules(data: dict, tax_year: int) -> TaxYearRules:
    """Validate a raw rules mapping and its bracket table.

    Raises:
        InvalidBracketTableError: bracket section malformed or not contiguous
        InvalidRulesError: any other schema violation
        UnsupportedDeductionKindError: unknown deduction kind key
    """
    if not isinstance(data, dict):
        raise InvalidRulesError(f"Tax rules for {tax_year} must be a mapping")
    data = {"tax_year": tax_year, **data}
    if data["tax_year"] != tax_year:
        raise InvalidRulesError(
            f"Tax rules file for {tax_year} declares tax_year {data['tax_year']}",
            field="tax_year",
        )

    try:
        rules = TaxYearRules.model_validate(data)
    except ValidationError as e:
        field = _first_error_field(e)
        if field.startswith("brackets"):
            raise InvalidBracketTableError(
                f"Invalid bracket table for {tax_year} at {field}: {e.errors()[0]['msg']}",
                field=field,
            ) from e
        raise InvalidRulesError(
            f"Invalid tax rules for {tax_year} at {field}: {e.errors()[0]['msg']}",
            field=field,
        ) from e

    validate_brackets(rules.brackets, tax_year)
    return rules


def load_tax_rules(tax_year: int, rules_dir: Optional[Path] = None) -> TaxYearRules:
    """Load and validate tax rules from tax_rules/YYYY.yaml."""
    config_file = (rules_dir or get_rules_dir()) / f"{tax_year}.yaml"
    if not config_file.exists():
        raise ConfigurationNotFoundError(
            f"No tax rules published for year {tax_year}: {config_file}",
            field="tax_year",
        )

    logger.debug(f"loading tax rules: {config_file}")
    try:
        with open(config_file, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise InvalidRulesError(f"Cannot parse {config_file}: {e}") from e

    return parse_tax_rules(data, tax_year)


class RulesProvider(Protocol):
    """Source of published rules keyed by tax year."""

    def rules_for(self, tax_year: int) -> TaxYearRules:
        ...


class YamlRulesProvider:
    """Rules provider backed by tax_rules/YYYY.yaml files.

    Each year is read and validated once; later calls return the cached,
    immutable TaxYearRules without locking.
    """

    def __init__(self, rules_dir: Optional[Path] = None):
        self.rules_dir = Path(rules_dir) if rules_dir else get_rules_dir()
        self._cache: dict[int, TaxYearRules] = {}
        self._lock = threading.Lock()

    def rules_for(self, tax_year: int) -> TaxYearRules:
        rules = self._cache.get(tax_year)
        if rules is not None:
            return rules
        with self._lock:
            rules = self._cache.get(tax_year)
            if rules is None:
                rules = load_tax_rules(tax_year, self.rules_dir)
                self._cache[tax_year] = rules
                logger.info(f"tax rules {tax_year}: {len(rules.brackets)} brackets loaded")
        return rules

    def available_years(self) -> list[int]:
        return available_years(self.rules_dir)

    def clear_cache(self) -> None:
        """Drop loaded years so edited rule files are read again."""
        with self._lock:
            self._cache.clear()


class InMemoryRulesProvider:
    """Rules provider for rules already held in memory (tests, database-backed callers)."""

    def __init__(self, rules: Optional[dict] = None):
        self._rules: dict[int, TaxYearRules] = {}
        for tax_year, value in (rules or {}).items():
            self.publish(value if isinstance(value, TaxYearRules) else parse_tax_rules(value, int(tax_year)))

    def publish(self, rules: TaxYearRules) -> None:
        validate_brackets(rules.brackets, rules.tax_year)
        self._rules[rules.tax_year] = rules

    def rules_for(self, tax_year: int) -> TaxYearRules:
        try:
            return self._rules[tax_year]
        except KeyError:
            raise ConfigurationNotFoundError(
                f"No tax rules published for year {tax_year}", field="tax_year"
            ) from None

    def available_years(self) -> list[int]:
        return sorted(self._rules, reverse=True)
