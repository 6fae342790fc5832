"""
Analysis Service Schema

Pydantic models for validating what the analysis service sends back.
"""

from typing import List, Optional
from pydantic import BaseModel, ValidationError, field_validator

from ..exceptions import MalformedResponse
from ..models.review import ReviewFinding, Severity


class ServiceFinding(BaseModel):
    """API 응답용 Finding 모델"""
    file: Optional[str] = None
    line: Optional[int] = None
    severity: Severity
    message: str

    @field_validator('file', mode='before')
    @classmethod
    def validate_file(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator('line')
    @classmethod
    def validate_line(cls, v):
        if v is not None and v <= 0:
            raise ValueError('Line numbers must be positive')
        return v

    @field_validator('severity', mode='before')
    @classmethod
    def validate_severity(cls, v):
        if not isinstance(v, str):
            raise ValueError('Severity must be a string')
        # Unknown tags fall back to info
        return Severity.parse(v)

    @field_validator('message')
    @classmethod
    def validate_message(cls, v):
        if not v.strip():
            raise ValueError('Message cannot be empty')
        return v.strip()

    def to_finding(self) -> ReviewFinding:
        return ReviewFinding(
            severity=self.severity,
            message=self.message,
            file_path=self.file,
            line=self.line,
        )


class ServiceResponse(BaseModel):
    """API 응답 전체"""
    findings: List[ServiceFinding]
    error: Optional[str] = None


def parse_service_response(payload) -> ServiceResponse:
    """
    Validate a raw response payload.

    Raises:
        MalformedResponse: If the payload does not match the expected shape
    """
    if not isinstance(payload, dict):
        raise MalformedResponse(f"Expected a JSON object, got {type(payload).__name__}")
    try:
        return ServiceResponse.model_validate(payload)
    except ValidationError as e:
        raise MalformedResponse(f"Invalid analysis response: {e.error_count()} validation errors") from e
