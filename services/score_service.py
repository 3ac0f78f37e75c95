"""
services/score_service.py

Score arithmetic shared by teacher entry, admin review and PDF rendering.
Columns are the template's scoresTable column dicts: {key, name, maxScore, editable, calculated}.
"""

import math
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List, Optional, Tuple

# (lower bound, grade, remark), checked top-down, first match wins
GRADE_TABLE = [
    (70, "A", "Excellent"),
    (60, "B", "Very Good"),
    (50, "C", "Good"),
    (40, "D", "Fair"),
]
FAIL_GRADE = ("F", "Poor")


@dataclass
class ScoreWarning:
    subject: str
    column: str
    given: Optional[float]
    applied: Optional[float]
    reason: str

    def to_dict(self) -> dict:
        return asdict(self)


def clamp(value, low, high):
    return max(low, min(high, value))


def is_scored(column: dict) -> bool:
    """Only editable, non-calculated columns count towards a total."""
    return bool(column.get("editable")) and not column.get("calculated")


def _lookup(total) -> Tuple[str, str]:
    for lower, letter, remark_text in GRADE_TABLE:
        if total >= lower:
            return letter, remark_text
    return FAIL_GRADE


def grade(total) -> str:
    return _lookup(total)[0]


def remark(total) -> str:
    return _lookup(total)[1]


def total(scores: Dict[str, float], columns: Iterable[dict]):
    return sum(scores.get(col["key"]) or 0 for col in columns if is_scored(col))


def max_obtainable(columns: Iterable[dict]):
    return sum(col.get("maxScore") or 0 for col in columns if is_scored(col))


def clean_scores(subject: str, raw: Dict[str, Optional[float]], columns: List[dict]):
    """
    Keep only values for scored columns, clamped into [0, maxScore].
    Returns (scores, warnings); every dropped or clamped value yields a warning.
    """
    by_key = {col["key"]: col for col in columns}
    cleaned: Dict[str, float] = {}
    warnings: List[ScoreWarning] = []

    for key, value in (raw or {}).items():
        column = by_key.get(key)
        if column is None:
            warnings.append(ScoreWarning(subject, key, value, None, "unknown column ignored"))
            continue
        if not is_scored(column):
            warnings.append(ScoreWarning(subject, column["name"], value, None, "calculated column ignored"))
            continue
        if value is None:
            continue
        applied = clamp(value, 0, column.get("maxScore") or 0)
        if applied != value:
            warnings.append(ScoreWarning(subject, column["name"], value, applied, "clamped to allowed range"))
        cleaned[key] = applied

    return cleaned, warnings


def compute_subject(subject: dict, columns: List[dict]):
    name = (subject.get("name") or "").strip()
    scores, warnings = clean_scores(name, subject.get("scores") or {}, columns)
    subject_total = total(scores, columns)
    return {
        "name": name,
        "scores": scores,
        "total": subject_total,
        "grade": grade(subject_total),
        "remark": remark(subject_total),
    }, warnings


def compute_overall(subjects: List[dict], columns: List[dict]) -> dict:
    if not subjects:
        return {"overall_total": None, "overall_average": None, "overall_grade": None}

    overall_total = sum(s["total"] for s in subjects)
    ceiling = len(subjects) * max_obtainable(columns)
    # half-up, matching how averages are printed on paper sheets
    average = math.floor(overall_total / ceiling * 100 + 0.5) if ceiling else 0
    return {
        "overall_total": overall_total,
        "overall_average": average,
        "overall_grade": grade(average),
    }


def rank_positions(totals: Dict[int, float]) -> Dict[int, int]:
    """Competition ranking by total: equal totals share a position (1, 1, 3)."""
    ordered = sorted(totals.items(), key=lambda item: item[1] or 0, reverse=True)
    positions: Dict[int, int] = {}
    previous = None
    for index, (result_id, value) in enumerate(ordered, start=1):
        if previous is None or value != previous[1]:
            previous = (index, value)
        positions[result_id] = previous[0]
    return positions
