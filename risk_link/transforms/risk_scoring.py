from __future__ import annotations

from typing import Iterable

from risk_link.models.assessment import (
    AssessedPatient,
    AssessmentResults,
    FieldScore,
    RiskScore,
)
from risk_link.models.patient import Patient
from risk_link.utils.parsing import Numeric, parse_blood_pressure, parse_vital

HIGH_RISK_THRESHOLD = 4
FEVER_THRESHOLD = 99.6
HIGH_FEVER_THRESHOLD = 101.0
SENIOR_AGE = 65

INVALID_CATEGORY = "Invalid"
BP_CATEGORIES = {4: "Stage 2", 3: "Stage 1", 2: "Elevated"}


def _systolic_score(systolic: float) -> int:
    if systolic >= 140:
        return 4
    if systolic >= 130:
        return 3
    if systolic >= 120:
        return 2
    return 1


def _diastolic_score(diastolic: float, systolic: float) -> int:
    if diastolic >= 90:
        return 4
    if diastolic >= 80:
        return 3
    # 이완기 <80: 수축기가 Elevated/Normal 구간일 때만 점수를 가진다
    if 120 <= systolic < 130:
        return 2
    if systolic < 120:
        return 1
    return 0


def score_blood_pressure(value: object) -> FieldScore:
    """혈압 점수 계산

    수축기와 이완기 단계가 다르면 더 높은 단계를 사용한다.

    Args:
        value: "수축기/이완기" 문자열 또는 None

    Returns:
        점수, 유효 여부, 단계 라벨
    """
    parsed = parse_blood_pressure(value)
    if parsed is None:
        return FieldScore(0, False, INVALID_CATEGORY)
    systolic, diastolic = parsed
    score = max(_systolic_score(systolic), _diastolic_score(diastolic, systolic))
    return FieldScore(score, True, BP_CATEGORIES.get(score, "Normal"))


def score_temperature(value: object) -> FieldScore:
    """체온 점수 계산

    Args:
        value: 숫자, 숫자 문자열 또는 None

    Returns:
        점수, 유효 여부
    """
    reading = parse_vital(value)
    if not isinstance(reading, Numeric):
        return FieldScore(0, False)
    if reading.value >= HIGH_FEVER_THRESHOLD:
        return FieldScore(2, True)
    if reading.value >= FEVER_THRESHOLD:
        return FieldScore(1, True)
    return FieldScore(0, True)


def score_age(value: object) -> FieldScore:
    """나이 점수 계산

    Args:
        value: 숫자, 숫자 문자열 또는 None

    Returns:
        점수, 유효 여부
    """
    reading = parse_vital(value)
    if not isinstance(reading, Numeric):
        return FieldScore(0, False)
    if reading.value > SENIOR_AGE:
        return FieldScore(2, True)
    return FieldScore(1, True)


def _has_fever(value: object, temperature: FieldScore) -> bool:
    if not temperature.is_valid:
        return False
    reading = parse_vital(value)
    return isinstance(reading, Numeric) and reading.value >= FEVER_THRESHOLD


def assess_patient(patient: Patient) -> AssessedPatient:
    """환자 레코드의 위험도를 평가

    Args:
        patient: 환자 레코드

    Returns:
        위험 점수와 플래그가 포함된 레코드
    """
    bp = score_blood_pressure(patient.blood_pressure)
    temperature = score_temperature(patient.temperature)
    age = score_age(patient.age)

    risk_score = RiskScore(
        blood_pressure=bp.score,
        temperature=temperature.score,
        age=age.score,
        total=bp.score + temperature.score + age.score,
    )
    values = patient.model_dump()
    values.update(
        risk_score=risk_score,
        blood_pressure_category=bp.category,
        is_high_risk=risk_score.total >= HIGH_RISK_THRESHOLD,
        has_fever=_has_fever(patient.temperature, temperature),
        has_data_quality_issues=not (bp.is_valid and temperature.is_valid and age.is_valid),
    )
    return AssessedPatient(**values)


def categorize_patients(patients: Iterable[AssessedPatient]) -> AssessmentResults:
    """평가된 환자를 세 코호트로 분류

    Args:
        patients: 평가된 환자 목록

    Returns:
        고위험, 발열, 데이터 품질 이슈 식별자 목록
    """
    results = AssessmentResults()
    for patient in patients:
        if patient.is_high_risk:
            results.high_risk_patients.append(patient.patient_id)
        if patient.has_fever:
            results.fever_patients.append(patient.patient_id)
        if patient.has_data_quality_issues:
            results.data_quality_issues.append(patient.patient_id)
    return results
