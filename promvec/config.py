"""Configuration models using Pydantic for validation."""
from typing import Dict, List, Optional, Union, Any, Literal, Mapping
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
import os

from promvec.buckets import BucketStrategy, strategy_for
from promvec.exceptions import MetricsError, ValidationError
from promvec.exposition import FMT_PROM, SUPPORTED_FORMATS
from promvec.labels import trim, validate_help, validate_labels, validate_name
from promvec.metric import DEFAULT_EXPIRY_PERIOD_MS


def _clean_labels(v):
    if v is None:
        return None
    if not isinstance(v, Mapping):
        raise ValueError(f"labels must be a mapping, got {type(v).__name__}")
    labels = trim(v)
    validate_labels(labels)
    return labels


class CollectorOptions(BaseModel):
    """Options for the top-level Collector."""
    labels: Optional[Dict[str, Any]] = None

    @field_validator('labels', mode='before')
    @classmethod
    def validate_labels(cls, v):
        return _clean_labels(v)


class MetricOptions(BaseModel):
    """Options shared by counters, gauges and histograms."""
    name: str
    help: str
    labels: Optional[Dict[str, Any]] = None
    parent_labels: Optional[Dict[str, Any]] = Field(default=None, alias="parentLabels")

    class Config:
        populate_by_name = True

    @field_validator('name', mode='before')
    @classmethod
    def validate_name(cls, v):
        validate_name(v)
        return v

    @field_validator('help', mode='before')
    @classmethod
    def validate_help(cls, v):
        validate_help(v)
        return v

    @field_validator('labels', 'parent_labels', mode='before')
    @classmethod
    def validate_labels(cls, v):
        return _clean_labels(v)


class CounterOptions(MetricOptions):
    """Counter options."""


class GaugeOptions(MetricOptions):
    """Gauge options; expiry resets every series to default_value when idle."""
    expires: bool = False
    expiry_period: float = Field(default=DEFAULT_EXPIRY_PERIOD_MS, alias="expiryPeriod", gt=0)
    default_value: Union[int, float] = Field(default=0, alias="defaultValue")


class HistogramOptions(MetricOptions):
    """Histogram options; buckets may be a list, "log-linear" or a strategy."""
    buckets: Any = Field(default=None, validate_default=True)

    class Config:
        populate_by_name = True
        arbitrary_types_allowed = True

    @field_validator('buckets', mode='before')
    @classmethod
    def validate_buckets(cls, v) -> BucketStrategy:
        return strategy_for(v)


def parse_options(model, options: Optional[Mapping] = None, **kwargs):
    """
    Validate options given as a mapping and/or keyword arguments.

    Errors raised by promvec's own checks surface unchanged (e.g.
    InvalidLabelError); anything else becomes a ValidationError.
    """
    data: Dict[str, Any] = {}
    if options is not None:
        if isinstance(options, BaseModel):
            options = options.model_dump(by_alias=False, exclude_unset=True)
        if not isinstance(options, Mapping):
            raise ValidationError(f"options must be a mapping, got {type(options).__name__}")
        data.update(options)
    data.update(kwargs)

    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        for err in e.errors():
            cause = (err.get('ctx') or {}).get('error')
            if isinstance(cause, MetricsError):
                raise cause from None
        raise ValidationError(f"invalid {model.__name__}: {e}") from e


class MetricDefinition(BaseModel):
    """A collector declared in a config file."""
    type: Literal["counter", "gauge", "histogram"]
    name: str
    help: str
    labels: Optional[Dict[str, Any]] = None

    # Gauge
    expires: Optional[bool] = None
    expiry_period: Optional[float] = None
    default_value: Optional[float] = None

    # Histogram
    buckets: Optional[Union[List[float], Literal["log-linear"]]] = None

    @model_validator(mode='after')
    def validate_kind_options(self):
        """Reject options that do not apply to the declared type."""
        gauge_only = [f for f in ('expires', 'expiry_period', 'default_value') if getattr(self, f) is not None]
        if gauge_only and self.type != "gauge":
            raise ValueError(f"Metric '{self.name}': {', '.join(gauge_only)} only apply to gauges")
        if self.buckets is not None and self.type != "histogram":
            raise ValueError(f"Metric '{self.name}': buckets only apply to histograms")
        return self

    def options(self) -> Dict[str, Any]:
        """Keyword options for Collector.counter/gauge/histogram."""
        return self.model_dump(exclude={'type'}, exclude_none=True)


class GlobalConfig(BaseModel):
    """Global configuration settings."""
    log_level: str = "INFO"
    format: str = FMT_PROM

    @field_validator('format')
    @classmethod
    def validate_format(cls, v):
        if v not in SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported format '{v}', expected one of {list(SUPPORTED_FORMATS)}")
        return v


class LibraryConfig(BaseModel):
    """Root configuration model."""
    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    labels: Optional[Dict[str, Any]] = None
    metrics: List[MetricDefinition] = Field(default_factory=list)

    class Config:
        populate_by_name = True

    @field_validator('labels', mode='before')
    @classmethod
    def validate_labels(cls, v):
        return _clean_labels(v)

    @field_validator('metrics')
    @classmethod
    def validate_metrics(cls, v):
        """Validate metric configurations."""
        names = [m.name for m in v]
        if len(names) != len(set(names)):
            raise ValueError("Metric names must be unique")

        return v


def load_config(config_path: str) -> LibraryConfig:
    """Load and validate configuration from YAML file."""
    import yaml

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        raw_config = yaml.safe_load(f) or {}

    if not isinstance(raw_config, dict):
        raise ValidationError(f"Configuration root must be a mapping: {config_path}")

    # Apply environment variable overrides
    if env_log_level := os.getenv('LOG_LEVEL'):
        if 'global' not in raw_config:
            raw_config['global'] = {}
        raw_config['global']['log_level'] = env_log_level

    try:
        config = LibraryConfig(**raw_config)
        return config
    except Exception as e:
        raise ValidationError(f"Configuration validation failed: {e}")
