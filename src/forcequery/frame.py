from __future__ import annotations

from typing import Iterable, List, Optional

import pandas as pd

from .decoding import Record
from .utils import fieldnames_for, scalarize


def records_to_frame(
    records: Iterable[Record],
    columns: Optional[List[str]] = None,
    *,
    flatten_nested: bool = False,
) -> pd.DataFrame:
    """One row per record; columns in first-seen order, absent fields as None.

    Sub-query values stay as lists of child records unless flatten_nested is
    set, in which case they become JSON text (as written to CSV).
    """
    rows = list(records)
    if flatten_nested:
        rows = [{k: scalarize(v) for k, v in r.items()} for r in rows]
    cols = columns or fieldnames_for(rows)
    df = pd.DataFrame.from_records(rows, columns=cols)
    # Keep values as text; missing fields stay None rather than NaN.
    return df.astype(object).where(df.notna(), None)
