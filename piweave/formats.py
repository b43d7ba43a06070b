import json
from typing import Any, Dict, Tuple

from .model import CalculationResult


_FIELDS = ["formula", "n", "reached_bound", "approximation", "error", "elapsed", "cancelled"]


def result_record(result: CalculationResult, meta: Dict[str, Any]) -> Dict[str, Any]:
    record = dict(meta)
    record["reached_bound"] = result.reached_bound
    record["approximation"] = result.approximation
    record["cancelled"] = result.reached_bound < int(meta.get("n", result.reached_bound))
    return record


def _cell(v) -> str:
    if v is None:
        return ""
    if isinstance(v, float):
        return repr(v)
    return str(v)


def _render_txt(record: Dict[str, Any]) -> str:
    lines = [f"PI = {record['approximation']!r} with n->{record['reached_bound']}"]
    if record.get("elapsed") is not None:
        lines.append(f"Time took: {record['elapsed']} seconds")
    if record.get("error") is not None:
        lines.append(f"Error: {record['error']}")
    if record.get("cancelled"):
        lines.append(f"Cancelled before n->{record.get('n')}")
    return "\n".join(lines) + "\n"


def serialize_result(result: CalculationResult, fmt: str, meta: Dict[str, Any]) -> Tuple[bytes, str]:
    fmt = (fmt or "txt").lower().strip()
    record = result_record(result, meta)
    if fmt == "txt":
        return _render_txt(record).encode("utf-8"), "text/plain"
    if fmt == "json":
        return (
            json.dumps(record, ensure_ascii=False, separators=(",", ":")).encode("utf-8"),
            "application/json",
        )
    if fmt in {"csv", "tsv"}:
        sep = "," if fmt == "csv" else "\t"
        row = [_cell(record.get(k)) for k in _FIELDS]
        out = sep.join(_FIELDS) + "\n" + sep.join(row) + "\n"
        mime = "text/csv" if fmt == "csv" else "text/tab-separated-values"
        return out.encode("utf-8"), mime
    if fmt == "ndjson":
        out = json.dumps(record, ensure_ascii=False, separators=(",", ":")) + "\n"
        return out.encode("utf-8"), "application/x-ndjson"
    raise ValueError("unsupported format")
