"""Coercion of model-supplied values into safe, serializable data.

Nothing here raises: bad input is replaced by defaults and every
replacement is appended to an ``issues`` list for logging.
"""

import json
import math
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from typing import Any

from ..windows import WINDOW_CONFIGS


def safe_string(value: Any, fallback: str, issues: list[str], field: str = "value") -> str:
    """Return ``value`` as a string, or ``fallback`` when it is missing or unusable."""
    if isinstance(value, str):
        return value
    if value is None:
        return fallback
    try:
        coerced = str(value)
    except Exception:
        issues.append(f"{field} invalid ({type(value).__name__}), using fallback")
        return fallback
    issues.append(f"{field} coerced to string from {type(value).__name__}")
    return coerced


def _finite(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def make_serializable(value: Any, issues: list[str], field: str = "value") -> Any:
    """Recursively coerce ``value`` into JSON primitives.

    Callables are dropped, circular references become None, dates become ISO
    strings and anything unsupported becomes None. If the result still does
    not serialize, ``{}`` is returned.
    """
    active: set[int] = set()

    def sanitize(v: Any, path: str) -> Any:
        if v is None or isinstance(v, (str, bool)):
            return v
        if isinstance(v, int):
            return v
        if isinstance(v, float):
            if math.isfinite(v):
                return v
            issues.append(f"{path} is not a finite number; set to null")
            return None
        if isinstance(v, (datetime, date)):
            return v.isoformat()
        if hasattr(v, "to_dict") and callable(v.to_dict):
            v = v.to_dict()
        elif is_dataclass(v) and not isinstance(v, type):
            v = asdict(v)

        if isinstance(v, (list, tuple, set, dict)):
            if id(v) in active:
                issues.append(f"{path} contains circular references; replacing with null")
                return None
            active.add(id(v))
            try:
                if isinstance(v, dict):
                    out = {}
                    for key, val in v.items():
                        if callable(val):
                            issues.append(f"{path}.{key} is non-serializable; dropped")
                            continue
                        out[str(key)] = sanitize(val, f"{path}.{key}")
                    return out
                return [sanitize(item, f"{path}[{i}]") for i, item in enumerate(v)]
            finally:
                active.discard(id(v))

        if isinstance(v, bytes):
            return v.decode("utf-8", errors="replace")
        issues.append(f"{path} had unsupported type {type(v).__name__}; set to null")
        return None

    try:
        sanitized = sanitize(value, field)
        json.dumps(sanitized)
        return sanitized
    except (TypeError, ValueError, RecursionError):
        issues.append(f"{field} not JSON-serializable; replaced with {{}}")
        return {}


def sanitize_window_config(window_type: str, raw: Any, issues: list[str]) -> dict[str, Any]:
    """Build a complete window config from whatever the model supplied."""
    defaults = WINDOW_CONFIGS.get(window_type, WINDOW_CONFIGS["custom"])
    cfg = raw if isinstance(raw, dict) else {}
    if raw is not None and not isinstance(raw, dict):
        issues.append(f"config must be an object, got {type(raw).__name__}; using defaults")

    title = safe_string(
        cfg.get("title"),
        f"{window_type[0].upper()}{window_type[1:]} Window",
        issues,
        field="title",
    )

    pos = cfg.get("position") if isinstance(cfg.get("position"), dict) else {}
    if _finite(pos.get("x")) and _finite(pos.get("y")):
        position = {"x": pos["x"], "y": pos["y"]}
    else:
        position = {"x": 100, "y": 100}
        if "position" in cfg:
            issues.append("position invalid, using defaults {x:100,y:100}")

    size = cfg.get("size") if isinstance(cfg.get("size"), dict) else {}
    if _finite(size.get("width")) and _finite(size.get("height")):
        dimensions = {"width": size["width"], "height": size["height"]}
    else:
        dimensions = {"width": defaults.default_width, "height": defaults.default_height}
        if "size" in cfg:
            issues.append(
                f"size invalid, using defaults "
                f"{{w:{defaults.default_width},h:{defaults.default_height}}}"
            )

    metadata = make_serializable(cfg.get("metadata") or {}, issues, "metadata")
    if not isinstance(metadata, dict):
        issues.append("metadata must be an object; replaced with {}")
        metadata = {}

    return {"title": title, "position": position, "size": dimensions, "metadata": metadata}
