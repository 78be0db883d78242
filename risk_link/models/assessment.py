from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field

from risk_link.models.patient import Patient


class FieldScore(NamedTuple):
    """단일 생체신호 점수"""

    score: int
    is_valid: bool
    category: str | None = None


class RiskScore(BaseModel):
    """항목별 위험 점수와 합계"""

    model_config = ConfigDict(frozen=True)

    blood_pressure: int = Field(..., ge=0, description="혈압 점수")
    temperature: int = Field(..., ge=0, description="체온 점수")
    age: int = Field(..., ge=0, description="나이 점수")
    total: int = Field(..., ge=0, description="합계 점수")


class AssessedPatient(Patient):
    """위험 평가 결과가 붙은 환자 레코드"""

    risk_score: RiskScore
    blood_pressure_category: str = Field(..., description="혈압 단계 라벨")
    is_high_risk: bool
    has_fever: bool
    has_data_quality_issues: bool


class AssessmentResults(BaseModel):
    """제출용 코호트 목록"""

    high_risk_patients: list[str] = Field(default_factory=list)
    fever_patients: list[str] = Field(default_factory=list)
    data_quality_issues: list[str] = Field(default_factory=list)
