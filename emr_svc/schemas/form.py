"""
Pydantic schemas for form templates and submissions.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from schemas.common import FormFieldType, PartialUpdate


class FormField(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, pattern=r"^[A-Za-z_][A-Za-z0-9_]*$", example="reason")
    label: str = Field(..., min_length=1, max_length=200, example="Reason for visit")
    type: FormFieldType = "text"
    required: bool = False
    options: Optional[List[str]] = Field(None, description="Choices for radio and select fields")

    @model_validator(mode="after")
    def check_options(self) -> "FormField":
        if self.type in ("radio", "select") and not self.options:
            raise ValueError(f"Field '{self.name}' of type {self.type} needs options")
        return self


def check_unique_names(fields: List[FormField]) -> List[FormField]:
    seen = set()
    for f in fields:
        if f.name in seen:
            raise ValueError(f"Duplicate field name: {f.name}")
        seen.add(f.name)
    return fields


class FormTemplateCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200, example="New patient intake")
    description: Optional[str] = Field(None, max_length=2000)
    fields: List[FormField] = Field(..., min_length=1)
    clinic_id: Optional[int] = Field(None, description="Omit for a template shared by all clinics")

    @field_validator("fields")
    @classmethod
    def unique_names(cls, value: List[FormField]) -> List[FormField]:
        return check_unique_names(value)


class FormTemplateUpdate(PartialUpdate):
    not_null = ("title", "fields")

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    fields: Optional[List[FormField]] = Field(None, min_length=1)
    clinic_id: Optional[int] = None

    @field_validator("fields")
    @classmethod
    def unique_names(cls, value: Optional[List[FormField]]) -> Optional[List[FormField]]:
        return check_unique_names(value) if value is not None else value


class FormTemplateResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    fields: List[FormField]
    clinic_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: str
    updated_at: str


class FormSubmissionCreate(BaseModel):
    values: Dict[str, Any] = Field(..., example={"reason": "Follow-up", "smoker": False})


class FormSubmissionResponse(BaseModel):
    id: int
    form_template_id: int
    values: Dict[str, Any]
    user_id: Optional[int] = None
    submitted_at: str
