from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Patient(BaseModel):
    """원격 API에서 조회한 환자 레코드"""

    model_config = ConfigDict(extra="allow", frozen=True)

    patient_id: str = Field(default="", description="환자 식별자")
    name: Any = Field(default=None, description="환자 이름")
    age: Any = Field(default=None, description="나이(숫자, 숫자 문자열 또는 없음)")
    gender: Any = Field(default=None, description="성별")
    blood_pressure: Any = Field(default=None, description="혈압(수축기/이완기)")
    temperature: Any = Field(default=None, description="체온(화씨)")
    visit_date: Any = Field(default=None, description="방문일")
    diagnosis: Any = Field(default=None, description="진단")
    medications: Any = Field(default=None, description="복용 약물")

    @field_validator("patient_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> str:
        if value is None:
            return ""
        return str(value).strip()


class Pagination(BaseModel):
    """페이지 메타데이터"""

    model_config = ConfigDict(extra="allow")

    page: int = 1
    limit: int = 0
    total: int = 0
    totalPages: int = 1
    hasNext: bool = False
    hasPrevious: bool = False


class Metadata(BaseModel):
    """응답 메타데이터"""

    model_config = ConfigDict(extra="allow")

    timestamp: str | None = None
    version: str | None = None
    requestId: str | None = None


class PageEnvelope(BaseModel):
    """단일 페이지 응답"""

    data: list[Patient] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)
    metadata: Metadata = Field(default_factory=Metadata)
    data_valid: bool = Field(default=True, exclude=True, description="data 필드 정상 여부")
