from __future__ import annotations

import os


def getenv_int(name: str, default: int) -> int:
    v = os.getenv(name)
    try:
        return int(v) if v is not None else default
    except ValueError:
        return default


def getenv_float(name: str, default: float) -> float:
    v = os.getenv(name)
    try:
        return float(v) if v is not None else default
    except ValueError:
        return default


MAX_PAGES = getenv_int("TS_MAX_PAGES", 200)
MAX_PDF_SIZE_MB = getenv_int("TS_MAX_PDF_SIZE_MB", 20)

# Words whose tops differ by less than this (pt) belong to the same statement row
ROW_Y_TOLERANCE = getenv_float("TS_ROW_Y_TOLERANCE", 2.5)
