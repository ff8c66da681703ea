from __future__ import annotations

import csv
import json
from typing import Any, Dict, Iterable, List


def fieldnames_for(records: Iterable[Dict[str, Any]]) -> List[str]:
    """Union of record keys, in first-seen order."""
    seen: Dict[str, None] = {}
    for rec in records:
        for k in rec:
            seen.setdefault(k, None)
    return list(seen)


def scalarize(v: Any) -> Any:
    # Sub-query rows come back as lists of dicts; keep CSV cells flat.
    if isinstance(v, (dict, list)):
        return json.dumps(v, ensure_ascii=False, sort_keys=True)
    if isinstance(v, str):
        return v.replace("\r\n", "\n").replace("\r", "\n")
    return v


def write_csv(path: str, rows: Iterable[Dict[str, Any]], fieldnames: List[str]) -> int:
    """Write rows to CSV with nested values as JSON text. Returns row count."""
    count = 0
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames, extrasaction="ignore")
        w.writeheader()
        for row in rows:
            w.writerow({k: scalarize(v) for k, v in row.items()})
            count += 1
    return count
