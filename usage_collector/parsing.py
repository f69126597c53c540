"""
Turning a usage command's stdout into canonical daily records.

Different ccusage-family tools name the same quantity differently, so every
canonical field has an ordered list of source keys; the first key present in
a raw record wins.
"""

import json
import math
from datetime import datetime
from typing import Any

from usage_collector.models import UsageTotals

FIELD_MAPPINGS: dict[str, tuple[str, ...]] = {
    "date": ("date", "day"),
    "inputTokens": ("inputTokens", "input_tokens"),
    "outputTokens": ("outputTokens", "output_tokens"),
    "cacheCreationTokens": (
        "cacheCreationTokens",
        "cacheCreationInputTokens",
        "cache_creation_tokens",
    ),
    "cacheReadTokens": (
        "cacheReadTokens",
        "cacheReadInputTokens",
        "cachedInputTokens",
        "cache_read_tokens",
    ),
    "totalTokens": ("totalTokens", "total_tokens"),
    "totalCost": ("totalCost", "costUSD", "cost", "total_cost"),
    "credits": ("credits", "totalCredits"),
    "modelsUsed": ("modelsUsed", "models"),
}

TOKEN_FIELDS = ("inputTokens", "outputTokens", "cacheCreationTokens", "cacheReadTokens")

# Formats seen in ccusage-family output besides ISO dates
DATE_FORMATS = ("%Y-%m-%d", "%b %d, %Y", "%B %d, %Y", "%Y/%m/%d", "%m/%d/%Y")


def extract_json_object(text: str) -> Any:
    """Parse the first balanced ``{...}`` object in ``text``.

    Output from an interactive shell can start with banners or warnings, so
    everything before the first brace is skipped. Braces inside JSON strings
    are ignored while matching.
    """
    start = text.find("{")
    if start == -1:
        raise ValueError("no JSON object found in command output")

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return json.loads(text[start : index + 1])

    raise ValueError("unterminated JSON object in command output")


def pick(raw: dict[str, Any], canonical: str) -> Any:
    """First value present in ``raw`` for the canonical field, else None."""
    for key in FIELD_MAPPINGS[canonical]:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def to_int(value: Any) -> int:
    return int(to_float(value))


def to_float(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(number) or math.isinf(number) else number


def normalize_date(value: Any) -> str | None:
    """Return ``YYYY-MM-DD`` or None if the value isn't a recognizable date."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue
    # ISO timestamps, e.g. 2025-01-31T00:00:00Z
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        return None


def normalize_models(raw: dict[str, Any]) -> list[str]:
    models = pick(raw, "modelsUsed")
    if isinstance(models, dict):
        # codex reports {"gpt-5": {...per-model usage...}}
        return list(models)
    if isinstance(models, list):
        return [str(model) for model in models]
    breakdowns = raw.get("modelBreakdowns")
    if isinstance(breakdowns, list):
        return [
            breakdown["modelName"]
            for breakdown in breakdowns
            if isinstance(breakdown, dict) and breakdown.get("modelName")
        ]
    return []


def normalize_daily_record(raw: dict[str, Any]) -> dict[str, Any]:
    """Map one raw daily entry onto the canonical sync shape."""
    record: dict[str, Any] = {"date": normalize_date(pick(raw, "date"))}
    for field in TOKEN_FIELDS:
        record[field] = to_int(pick(raw, field))

    total_tokens = pick(raw, "totalTokens")
    record["totalTokens"] = (
        to_int(total_tokens)
        if total_tokens is not None
        else sum(record[field] for field in TOKEN_FIELDS)
    )
    record["totalCost"] = to_float(pick(raw, "totalCost"))

    credits = pick(raw, "credits")
    if credits is not None:
        record["credits"] = to_float(credits)

    record["modelsUsed"] = normalize_models(raw)
    return record


def compute_totals(daily: list[dict[str, Any]]) -> UsageTotals:
    credits = [record["credits"] for record in daily if "credits" in record]
    return UsageTotals(
        input_tokens=sum(record["inputTokens"] for record in daily),
        output_tokens=sum(record["outputTokens"] for record in daily),
        cache_creation_tokens=sum(record["cacheCreationTokens"] for record in daily),
        cache_read_tokens=sum(record["cacheReadTokens"] for record in daily),
        total_tokens=sum(record["totalTokens"] for record in daily),
        total_cost=round(sum(record["totalCost"] for record in daily), 6),
        credits=round(sum(credits), 6) if credits else None,
    )


def parse_usage_output(stdout: str) -> list[dict[str, Any]]:
    """Extract and normalize the ``daily`` array from command output.

    Raises ValueError when the output has no JSON object or no ``daily`` list.
    """
    data = extract_json_object(stdout)
    if not isinstance(data, dict) or not isinstance(data.get("daily"), list):
        raise ValueError("Invalid usage data format: missing daily array")
    return [
        normalize_daily_record(raw) for raw in data["daily"] if isinstance(raw, dict)
    ]
