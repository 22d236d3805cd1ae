from __future__ import annotations

from typing import Dict, List


def words_to_rows(words: List[Dict[str, object]], y_tolerance: float = 2.5) -> List[Dict[str, object]]:
    """
    Group words (with x0,x1,top,bottom,text) into rough rows by baseline proximity.
    Returns a list of { y, tokens } in reading order; tokens are sorted left to right.
    """
    if not words:
        return []
    words_sorted = sorted(words, key=lambda w: (float(w.get("top", 0.0)), float(w.get("x0", 0.0))))
    rows: List[Dict[str, object]] = []
    for w in words_sorted:
        top = float(w.get("top", 0.0))
        if not rows or abs(rows[-1]["y"] - top) > y_tolerance:
            rows.append({"y": top, "tokens": [w]})
        else:
            rows[-1]["tokens"].append(w)
            # keep representative baseline as the first token's top
    for row in rows:
        row["tokens"].sort(key=lambda t: float(t.get("x0", 0.0)))
    return rows


def row_texts(row: Dict[str, object]) -> List[str]:
    """Non-empty, stripped token texts of a row from ``words_to_rows``."""
    texts = (str(t.get("text", "")).strip() for t in row.get("tokens", []))
    return [t for t in texts if t]
