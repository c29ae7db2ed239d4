from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Optional

import pandas as pd

REQUIRED_LINE_ITEM_COLS = ["invoice_date", "pharmacy_id", "product_name", "quantity", "total_price"]


def read_line_items(
    csv_path: str | Path,
    parquet_path: Optional[str | Path] = None,
    *,
    columns: Optional[Iterable[str]] = None,
    **csv_kwargs: Any,
) -> pd.DataFrame:
    """Load the invoice line item table preferring Parquet with CSV fallback.

    Parameters
    ----------
    csv_path:
        Location of the canonical CSV export.
    parquet_path:
        Optional explicit Parquet path. When omitted we look for ``<csv>.parquet``.
    columns:
        Optional subset of columns to read; the required columns are always
        included.
    csv_kwargs:
        Additional keyword arguments forwarded to :func:`pandas.read_csv`.

    The returned frame has ``invoice_date`` as a normalised ``datetime64``
    column, numeric ``quantity``/``total_price`` and an integer
    ``pharmacy_id``.  Rows without a date or product name are dropped.
    """

    csv_path = Path(csv_path)
    pq_path = Path(parquet_path) if parquet_path is not None else csv_path.with_suffix(".parquet")

    column_list = None
    if columns is not None:
        column_list = list(dict.fromkeys([*REQUIRED_LINE_ITEM_COLS, *columns]))

    if pq_path.exists():
        frame = pd.read_parquet(pq_path, columns=column_list)
    elif csv_path.exists():
        if column_list is not None and "usecols" not in csv_kwargs:
            csv_kwargs["usecols"] = column_list
        frame = pd.read_csv(csv_path, **csv_kwargs)
    else:
        raise FileNotFoundError(f"Line item dataset not found at {csv_path}")

    missing = [col for col in REQUIRED_LINE_ITEM_COLS if col not in frame.columns]
    if missing:
        raise ValueError(f"Line item dataset is missing columns: {', '.join(missing)}")

    frame = frame.copy()
    frame["invoice_date"] = pd.to_datetime(frame["invoice_date"], errors="coerce").dt.normalize()
    frame["quantity"] = pd.to_numeric(frame["quantity"], errors="coerce").fillna(0.0)
    frame["total_price"] = pd.to_numeric(frame["total_price"], errors="coerce").fillna(0.0)
    frame["pharmacy_id"] = pd.to_numeric(frame["pharmacy_id"], errors="coerce").astype("Int64")
    frame = frame.dropna(subset=["invoice_date", "product_name"])
    frame["product_name"] = frame["product_name"].astype(str).str.strip()
    return frame[frame["product_name"] != ""].reset_index(drop=True)
