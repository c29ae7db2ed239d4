r"""backend\app\services\validation_service.py"""

from __future__ import annotations

import os

import pandas as pd

from .io_utils import REQUIRED_LINE_ITEM_COLS


class ValidationService:
    def __init__(self, data_root: str | None = None):
        self.data_root = data_root or os.getenv("DATA_DIR", "data")

    def run(self) -> dict:
        checks = []

        def add(name: str, ok: bool, msg: str = "") -> None:
            checks.append({"name": name, "ok": bool(ok), "message": msg})

        csv_path = os.path.join(self.data_root, "line_items.csv")
        parquet_path = os.path.join(self.data_root, "line_items.parquet")
        has_csv = os.path.exists(csv_path)
        has_parquet = os.path.exists(parquet_path)

        add("file_line_items_exists", has_csv or has_parquet, parquet_path if has_parquet else csv_path)

        if has_parquet or has_csv:
            if has_parquet:
                df = pd.read_parquet(parquet_path).head(3)
            else:
                df = pd.read_csv(csv_path, nrows=3)
            missing = [c for c in REQUIRED_LINE_ITEM_COLS if c not in df.columns]
            add(
                "line_items_columns_ok",
                not missing,
                f"missing: {missing}" if missing else f"have: {list(df.columns)[:8]}",
            )

            if not missing and not df.empty:
                dates = pd.to_datetime(df["invoice_date"], errors="coerce")
                add("invoice_dates_parse", bool(dates.notna().all()), "sampled first rows")

        overall = all(x["ok"] for x in checks)
        return {"ok": overall, "checks": checks}
