"""Prometheus text exposition helpers."""
import math
from typing import Iterable, Mapping, Optional, Tuple

FMT_PROM_0_0_4 = "prometheus-0.0.4"

# FMT_PROM points to the latest supported format
FMT_PROM = FMT_PROM_0_0_4

CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

SUPPORTED_FORMATS = (FMT_PROM_0_0_4,)


def format_number(value) -> str:
    """Render a number without trailing-zero padding: 1.0 -> "1", 2.5 -> "2.5"."""
    if isinstance(value, bool):
        value = int(value)
    if isinstance(value, int):
        return str(value)
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if math.isnan(value):
        return "NaN"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def format_label_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    return (
        str(value)
        .replace("\\", "\\\\")
        .replace("\n", "\\n")
        .replace('"', '\\"')
    )


def format_labels(pairs: Iterable[Tuple[str, object]]) -> str:
    """Join label pairs as k1="v1",k2="v2" (no braces)."""
    return ",".join(f'{k}="{format_label_value(v)}"' for k, v in pairs)


def format_sample(name: str, labels: Optional[Mapping], value) -> str:
    """
    One sample line, e.g. http_requests{code="200"} 5

    An empty label set still renders its braces: requests{} 3
    """
    label_str = format_labels((labels or {}).items())
    return f"{name}{{{label_str}}} {format_number(value)}\n"


def format_header(name: str, help_text: str, metric_type: str) -> str:
    help_text = help_text.replace("\\", "\\\\").replace("\n", "\\n")
    return f"# HELP {name} {help_text}\n# TYPE {name} {metric_type}\n"
