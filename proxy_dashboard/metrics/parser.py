"""Exposition parser — turns `/metrics` text into ordered metric families.

The proxy serves the line-based text exposition format:

    # HELP api_requests Api request by method
    # TYPE api_requests counter
    api_requests{rpc_method="img_proxy_fetch"} 42

Families come back in first-seen order, one per distinct family name.
Histogram `_bucket`/`_sum`/`_count` lines (and summary quantile/`_sum`/`_count`
lines) are folded into one sample per label set, but only when the base name was
declared with a `# TYPE` line; without one every sample name is its own
`unknown` family.

Malformed lines follow one fixed policy: a sample line with a missing or
non-numeric value, an invalid metric name or an unquoted label value is skipped
and the family keeps whatever else it collected. An unterminated label set or
label value is structural damage and raises `ParseError` for the whole text.
"""

from __future__ import annotations

import enum
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Iterable

logger = logging.getLogger("proxydash.parser")

_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
_LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_LABEL_ESCAPES = {"n": "\n", "\\": "\\", '"': '"'}
_HELP_ESCAPE_RE = re.compile(r"\\([\\n])")


class MetricKind(str, enum.Enum):
    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"
    SUMMARY = "summary"
    UNKNOWN = "unknown"

    @classmethod
    def from_text(cls, text: str) -> "MetricKind":
        try:
            return cls(text.strip().lower())
        except ValueError:
            return cls.UNKNOWN


# Sample-name suffixes each kind folds into its base family.
_KIND_SUFFIXES: dict[MetricKind, tuple[str, ...]] = {
    MetricKind.COUNTER: ("_total", "_created"),
    MetricKind.HISTOGRAM: ("_bucket", "_count", "_sum", "_created"),
    MetricKind.SUMMARY: ("_count", "_sum", "_created"),
}
_ALL_SUFFIXES = ("_bucket", "_count", "_sum", "_total", "_created")


class ParseError(ValueError):
    """Raised for structurally broken exposition text."""

    def __init__(self, message: str, line: int) -> None:
        super().__init__(f"line {line}: {message}")
        self.line = line


@dataclass
class MetricSample:
    """One labeled sample; histograms and summaries carry their count in `value`."""

    labels: dict[str, str] = field(default_factory=dict)
    value: float = 0.0
    buckets: dict[str, float] | None = None
    quantiles: dict[str, float] | None = None
    sum: float | None = None


@dataclass
class MetricFamily:
    name: str
    help: str = ""
    kind: MetricKind = MetricKind.UNKNOWN
    samples: list[MetricSample] = field(default_factory=list)


class _MalformedLine(Exception):
    pass


def parse_exposition(text: str) -> list[MetricFamily]:
    """Parse exposition text into families in first-seen order."""
    families: dict[str, MetricFamily] = {}
    # family name -> label-set key -> sample, for histogram/summary folding
    groups: dict[str, dict[tuple[tuple[str, str], ...], MetricSample]] = {}

    for line_no, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line:
            continue
        if line.startswith("#"):
            _parse_comment(line, families)
            continue

        try:
            name, labels, value = _parse_sample_line(line, line_no)
        except _MalformedLine as exc:
            logger.debug("Skipping malformed sample on line %s: %s", line_no, exc)
            continue

        family, suffix = _resolve_family(name, families)
        if suffix == "_created":
            continue
        if family.kind in (MetricKind.HISTOGRAM, MetricKind.SUMMARY):
            try:
                _fold_sample(family, groups.setdefault(family.name, {}), suffix, labels, value)
            except _MalformedLine as exc:
                logger.debug("Skipping malformed sample on line %s: %s", line_no, exc)
            continue
        family.samples.append(MetricSample(labels=labels, value=value))

    return list(families.values())


def _family(families: dict[str, MetricFamily], name: str) -> MetricFamily:
    family = families.get(name)
    if family is None:
        family = MetricFamily(name=name)
        families[name] = family
    return family


def _parse_comment(line: str, families: dict[str, MetricFamily]) -> None:
    tokens = line[1:].strip().split(None, 2)
    if len(tokens) < 2 or tokens[0] not in ("HELP", "TYPE"):
        return
    name = tokens[1]
    if not _NAME_RE.match(name):
        return
    rest = tokens[2] if len(tokens) == 3 else ""
    family = _family(families, name)
    if tokens[0] == "HELP":
        family.help = _HELP_ESCAPE_RE.sub(lambda m: "\n" if m.group(1) == "n" else "\\", rest)
    else:
        family.kind = MetricKind.from_text(rest)


def _resolve_family(name: str, families: dict[str, MetricFamily]) -> tuple[MetricFamily, str]:
    family = families.get(name)
    if family is not None:
        return family, ""
    for suffix in _ALL_SUFFIXES:
        if not name.endswith(suffix):
            continue
        base = families.get(name[: -len(suffix)])
        if base is not None and suffix in _KIND_SUFFIXES.get(base.kind, ()):
            return base, suffix
    return _family(families, name), ""


def _fold_sample(
    family: MetricFamily,
    groups: dict[tuple[tuple[str, str], ...], MetricSample],
    suffix: str,
    labels: dict[str, str],
    value: float,
) -> None:
    histogram = family.kind is MetricKind.HISTOGRAM
    bound_label = "le" if histogram else "quantile"
    bound = labels.pop(bound_label, None)

    if suffix in ("_bucket", "") and bound is None:
        raise _MalformedLine(f"{family.name} sample without {bound_label} label")
    if suffix == "" and histogram:
        raise _MalformedLine(f"bare sample for histogram {family.name}")

    key = tuple(sorted(labels.items()))
    sample = groups.get(key)
    if sample is None:
        sample = MetricSample(
            labels=labels,
            buckets={} if histogram else None,
            quantiles=None if histogram else {},
        )
        groups[key] = sample
        family.samples.append(sample)

    if suffix == "_count":
        sample.value = value
    elif suffix == "_sum":
        sample.sum = value
    elif histogram:
        sample.buckets[bound] = value
    else:
        sample.quantiles[bound] = value


def _parse_sample_line(line: str, line_no: int) -> tuple[str, dict[str, str], float]:
    brace = line.find("{")
    if brace == -1:
        parts = line.split()
        if len(parts) < 2:
            raise _MalformedLine("missing value")
        name, value_text = parts[0], parts[1]
        labels: dict[str, str] = {}
    else:
        name = line[:brace].strip()
        labels, end = _parse_labels(line, brace + 1, line_no)
        rest = line[end:].split()
        if not rest:
            raise _MalformedLine("missing value")
        value_text = rest[0]

    if not _NAME_RE.match(name):
        raise _MalformedLine(f"invalid metric name {name!r}")
    try:
        value = float(value_text)
    except ValueError:
        raise _MalformedLine(f"non-numeric value {value_text!r}") from None
    return name, labels, value


def _parse_labels(line: str, pos: int, line_no: int) -> tuple[dict[str, str], int]:
    """Scan `k="v",...}` starting at `pos`; returns labels and the index past `}`."""
    labels: dict[str, str] = {}
    i, n = pos, len(line)
    while True:
        while i < n and line[i] in " \t,":
            i += 1
        if i >= n:
            raise ParseError("unterminated label set", line_no)
        if line[i] == "}":
            return labels, i + 1

        eq = line.find("=", i)
        close = line.find("}", i)
        if eq == -1 or (close != -1 and close < eq):
            if close == -1:
                raise ParseError("unterminated label set", line_no)
            raise _MalformedLine("label without a value")
        key = line[i:eq].strip()
        i = eq + 1
        while i < n and line[i] in " \t":
            i += 1
        if i >= n or line[i] != '"':
            if line.find("}", i) == -1:
                raise ParseError("unterminated label set", line_no)
            raise _MalformedLine(f"label {key!r} has an unquoted value")

        i += 1
        chars: list[str] = []
        while i < n and line[i] != '"':
            if line[i] == "\\" and i + 1 < n:
                chars.append(_LABEL_ESCAPES.get(line[i + 1], line[i + 1]))
                i += 2
            else:
                chars.append(line[i])
                i += 1
        if i >= n:
            raise ParseError(f"unterminated value for label {key!r}", line_no)
        if not _LABEL_NAME_RE.match(key):
            if line.find("}", i) == -1:
                raise ParseError("unterminated label set", line_no)
            raise _MalformedLine(f"invalid label name {key!r}")
        labels[key] = "".join(chars)
        i += 1


# ─── Rendering ───────────────────────────────────────────────────


def format_value(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if float(value).is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(float(value))


def json_number(value: float | str | None) -> float | str | None:
    """JSON has no Inf/NaN; those go out in exposition spelling."""
    if isinstance(value, float) and not math.isfinite(value):
        return format_value(value)
    return value


def _escape_help(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def _escape_label_value(text: str) -> str:
    return _escape_help(text).replace('"', '\\"')


def _format_labels(labels: dict[str, str]) -> str:
    if not labels:
        return ""
    pairs = ",".join(f'{key}="{_escape_label_value(value)}"' for key, value in labels.items())
    return "{" + pairs + "}"


def render_exposition(families: Iterable[MetricFamily]) -> str:
    """Write families back out as exposition text."""
    lines: list[str] = []
    for family in families:
        name = family.name
        if family.help:
            lines.append(f"# HELP {name} {_escape_help(family.help)}")
        if family.kind is not MetricKind.UNKNOWN:
            lines.append(f"# TYPE {name} {family.kind.value}")
        for sample in family.samples:
            if family.kind is MetricKind.HISTOGRAM:
                for bound, count in (sample.buckets or {}).items():
                    labels = {**sample.labels, "le": bound}
                    lines.append(f"{name}_bucket{_format_labels(labels)} {format_value(count)}")
            elif family.kind is MetricKind.SUMMARY:
                for quantile, observed in (sample.quantiles or {}).items():
                    labels = {**sample.labels, "quantile": quantile}
                    lines.append(f"{name}{_format_labels(labels)} {format_value(observed)}")
            else:
                lines.append(f"{name}{_format_labels(sample.labels)} {format_value(sample.value)}")
                continue
            if sample.sum is not None:
                lines.append(f"{name}_sum{_format_labels(sample.labels)} {format_value(sample.sum)}")
            lines.append(f"{name}_count{_format_labels(sample.labels)} {format_value(sample.value)}")
    return "\n".join(lines) + "\n"
