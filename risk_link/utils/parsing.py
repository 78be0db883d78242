from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Missing:
    """값 없음(None 또는 공백 문자열)"""


@dataclass(frozen=True)
class Numeric:
    """유한한 숫자 측정값"""

    value: float


@dataclass(frozen=True)
class Malformed:
    """숫자로 해석할 수 없는 원본 값"""

    raw: object


VitalValue = Missing | Numeric | Malformed


def _to_finite(text: str) -> float | None:
    try:
        number = float(text)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def parse_vital(value: object) -> VitalValue:
    """생체신호 원본 값을 닫힌 변형 타입으로 분류

    Args:
        value: 숫자, 숫자 문자열 또는 None

    Returns:
        Missing, Numeric, Malformed 중 하나
    """
    if value is None:
        return Missing()
    if isinstance(value, bool):
        return Malformed(value)
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return Malformed(value)
        return Numeric(float(value))
    if isinstance(value, str):
        text = value.strip()
        if text == "":
            return Missing()
        number = _to_finite(text)
        if number is None:
            return Malformed(value)
        return Numeric(number)
    return Malformed(value)


def parse_blood_pressure(value: object) -> tuple[float, float] | None:
    """수축기/이완기 형식의 혈압 문자열을 파싱

    Args:
        value: 원본 혈압 값

    Returns:
        (수축기, 이완기) 또는 파싱 실패 시 None
    """
    if not isinstance(value, str) or value.strip() == "":
        return None
    parts = value.split("/")
    if len(parts) != 2:
        return None
    systolic_text, diastolic_text = (part.strip() for part in parts)
    if systolic_text == "" or diastolic_text == "":
        return None
    systolic = _to_finite(systolic_text)
    diastolic = _to_finite(diastolic_text)
    if systolic is None or diastolic is None:
        return None
    return systolic, diastolic
