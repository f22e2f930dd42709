"""YAML schema validation and config loading.

Provides validation for rendiff configuration files using pydantic:
    - Threshold schema (threshold.v1): a single level or a list of bands
    - Logging section shared by the commands
    - Golden suite schema (golden_suite.v1): cases of (actual, expected, threshold)

All loaders fail fast with actionable messages (offending keys, expected
ranges) and chain the pydantic error.

Usage:
    from rendiff import validators

    threshold = validators.load_threshold_config("threshold.yaml").to_threshold()
    suite = validators.load_golden_suite("ci/golden.yaml")
"""

from pathlib import Path
from typing import List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from rendiff.threshold import UNLIMITED, Threshold
from rendiff.utils import fs


# ============================================================================
# THRESHOLD SCHEMA V1
# ============================================================================

class BandV1(BaseModel):
    """One threshold band: up to `allowance` differences in (previous, magnitude]."""
    model_config = ConfigDict(extra='forbid')

    magnitude: int = Field(..., ge=1, le=255, description="Upper magnitude of the band (inclusive)")
    allowance: Union[int, Literal["unlimited"]] = Field(
        ..., description="Number of differences allowed in the band, or 'unlimited'"
    )

    @field_validator('allowance')
    @classmethod
    def validate_allowance(cls, v):
        if isinstance(v, int) and v < 0:
            raise ValueError(f"allowance must be non-negative, got {v}")
        return v

    def as_pair(self):
        return (self.magnitude, UNLIMITED if self.allowance == "unlimited" else self.allowance)


class ThresholdV1(BaseModel):
    """Threshold definition: exactly one of `level` or `bands`.

    level: accept any number of differences up to this magnitude (0 = exact).
    bands: per-band allowances, checked in ascending order without carry-over.
    """
    model_config = ConfigDict(extra='forbid')

    level: Optional[int] = Field(None, ge=0, le=255, description="no_bigger_than level")
    bands: Optional[List[BandV1]] = Field(None, description="Per-band allowances")

    @model_validator(mode='after')
    def validate_exactly_one(self) -> 'ThresholdV1':
        if (self.level is None) == (self.bands is None):
            raise ValueError("Threshold needs exactly one of 'level' or 'bands'")
        return self

    @field_validator('bands')
    @classmethod
    def validate_unique_magnitudes(cls, v):
        if v is not None:
            seen = [b.magnitude for b in v]
            dupes = sorted({m for m in seen if seen.count(m) > 1})
            if dupes:
                raise ValueError(f"Duplicate band magnitudes: {dupes}")
        return v

    def to_threshold(self) -> Threshold:
        if self.level is not None:
            return Threshold.coerce(self.level)
        return Threshold.coerce([b.as_pair() for b in self.bands])


def _coerce_threshold(v):
    # A bare integer is shorthand for {level: N}
    if isinstance(v, int) and not isinstance(v, bool):
        return {'level': v}
    return v


# ============================================================================
# LOGGING SECTION
# ============================================================================

class LoggingV1(BaseModel):
    """Keyword arguments for logging_config.setup_logging()."""
    log_level: str = Field("INFO", description="DEBUG, INFO, WARNING, ERROR or CRITICAL")
    log_file: Optional[str] = Field(None, description="JSON-lines log file")
    json_output: bool = Field(False, alias="json", description="JSON console output")
    color: bool = Field(True, description="ANSI colors on console")

    model_config = ConfigDict(extra='forbid', populate_by_name=True)

    @field_validator('log_level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        allowed = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}, got {v}")
        return v.upper()

    def setup_kwargs(self) -> dict:
        return {
            'log_level': self.log_level,
            'log_file': self.log_file,
            'json': self.json_output,
            'color': self.color,
        }


# ============================================================================
# GOLDEN SUITE SCHEMA V1
# ============================================================================

class GoldenCaseV1(BaseModel):
    """One comparison: paths are relative to the suite's root."""
    model_config = ConfigDict(extra='forbid')

    name: str = Field(..., description="Unique case name, used for output files")
    actual: str = Field(..., description="Rendered image under test")
    expected: str = Field(..., description="Reference image")
    threshold: Optional[ThresholdV1] = Field(None, description="Overrides the suite default")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or any(c in v for c in '/\\') or v in ('.', '..'):
            raise ValueError(f"Case name must be a non-empty file-name-safe string, got: {v!r}")
        return v

    @field_validator('threshold', mode='before')
    @classmethod
    def coerce_threshold(cls, v):
        return _coerce_threshold(v)


class GoldenSuiteV1(BaseModel):
    """Golden comparison suite (golden_suite.v1 schema)."""
    schema_version: str = Field("golden_suite.v1", alias="schema", description="Schema version")
    root: str = Field(".", description="Directory case paths are relative to (relative to the suite file)")
    output_dir: str = Field("outputs/golden", description="Where diff images and report.yaml go")
    threshold: ThresholdV1 = Field(
        default_factory=lambda: ThresholdV1(level=0),
        description="Default threshold for cases without one"
    )
    logging: LoggingV1 = Field(default_factory=LoggingV1)
    cases: List[GoldenCaseV1] = Field(..., min_length=1, description="Comparisons to run")

    model_config = ConfigDict(extra='forbid', populate_by_name=True)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "golden_suite.v1":
            raise ValueError(f"Expected schema 'golden_suite.v1', got '{v}'")
        return v

    @field_validator('threshold', mode='before')
    @classmethod
    def coerce_threshold(cls, v):
        return _coerce_threshold(v)

    @model_validator(mode='after')
    def validate_unique_names(self) -> 'GoldenSuiteV1':
        names = [c.name for c in self.cases]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"Duplicate case names: {dupes}")
        return self

    def threshold_for(self, case: GoldenCaseV1) -> Threshold:
        return (case.threshold or self.threshold).to_threshold()


# ============================================================================
# PUBLIC API
# ============================================================================

def load_threshold_config(path: Union[str, Path]) -> ThresholdV1:
    """Load and validate a threshold from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        YAML file with `level: N` or `bands: [...]` (a bare integer also works)

    Returns
    -------
    ThresholdV1
        Validated threshold config

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If the file is not valid YAML or validation fails
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Threshold config not found: {path}")

    try:
        data = _coerce_threshold(fs.load_yaml(path))
    except yaml.YAMLError as e:
        raise ValueError(f"Threshold config at {path} is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Threshold config at {path} must be a mapping or an integer")
    try:
        return ThresholdV1(**data)
    except ValidationError as e:
        raise ValueError(f"Threshold config validation failed at {path}: {e}") from e


def load_golden_suite(path: Union[str, Path]) -> GoldenSuiteV1:
    """Load and validate a golden suite from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to golden_suite.v1 file

    Returns
    -------
    GoldenSuiteV1
        Validated suite; `root` and `output_dir` are resolved against the
        suite file's directory

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If the file is not valid YAML or validation fails (with actionable
        error message)
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Golden suite not found: {path}")

    try:
        data = fs.load_yaml(path)
    except yaml.YAMLError as e:
        raise ValueError(f"Golden suite at {path} is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Golden suite at {path} must be a mapping")
    try:
        suite = GoldenSuiteV1(**data)
    except ValidationError as e:
        raise ValueError(f"Golden suite validation failed at {path}: {e}") from e

    base = path.parent
    update = {
        'root': str(base / suite.root),
        'output_dir': str(base / suite.output_dir),
    }
    if suite.logging.log_file:
        update['logging'] = suite.logging.model_copy(
            update={'log_file': str(base / suite.logging.log_file)}
        )
    return suite.model_copy(update=update)
