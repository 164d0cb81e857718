"""
Service layer for dynamic form templates and their submissions.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional

from email_validator import EmailNotValidError, validate_email

from core.datetime_utils import is_valid_date
from core.exceptions import NotFoundError, ValidationFailedError
from repositories import FormRepository
from schemas import (
    FormSubmissionCreate,
    FormSubmissionResponse,
    FormTemplateCreate,
    FormTemplateResponse,
    FormTemplateUpdate,
)

logger = logging.getLogger(__name__)


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or value == []


def _field_error(field: Mapping[str, Any], value: Any) -> Optional[str]:
    """Problem with one submitted value, or None if it fits the field."""
    kind, options = field["type"], field.get("options") or []
    if kind in ("radio", "select"):
        if value not in options:
            return f"must be one of {options}"
    elif kind == "checkbox":
        if options:
            if not isinstance(value, list) or any(v not in options for v in value):
                return f"must be a list of values from {options}"
        elif not isinstance(value, bool):
            return "must be true or false"
    elif kind == "number":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            try:
                float(value)
            except (TypeError, ValueError):
                return "must be a number"
    elif kind == "date":
        if not isinstance(value, str) or not is_valid_date(value):
            return "must be a date (YYYY-MM-DD)"
    elif kind == "email":
        try:
            validate_email(str(value), check_deliverability=False)
        except EmailNotValidError:
            return "must be a valid email address"
    elif not isinstance(value, str):
        return "must be text"
    return None


def validate_submission(fields: List[Mapping[str, Any]], values: Mapping[str, Any]) -> None:
    """
    Check submitted values against a template's fields.

    Required fields must be present and non-empty, unknown keys are
    rejected, and choice fields must use the template's options.

    Raises:
        ValidationFailedError: Listing every offending field.
    """
    known = {f["name"]: f for f in fields}
    errors: Dict[str, str] = {}

    for name in values:
        if name not in known:
            errors[name] = "is not a field of this form"

    for name, field in known.items():
        value = values.get(name)
        if _is_blank(value):
            if field.get("required"):
                errors[name] = "is required"
            continue
        problem = _field_error(field, value)
        if problem:
            errors[name] = problem

    if errors:
        raise ValidationFailedError("Submission does not match the form", errors=errors)


class FormService:
    """Business logic for form templates and submissions."""

    def __init__(self, form_repository: FormRepository):
        self._repo = form_repository

    def _require_template(self, template_id: int) -> Dict[str, Any]:
        template = self._repo.get_template(template_id)
        if template is None:
            raise NotFoundError("Form template", template_id)
        return template

    def list_templates(self, clinic_id: Optional[int] = None) -> List[FormTemplateResponse]:
        return [FormTemplateResponse(**t) for t in self._repo.list_templates(clinic_id)]

    def get_template(self, template_id: int) -> FormTemplateResponse:
        return FormTemplateResponse(**self._require_template(template_id))

    def create_template(self, data: FormTemplateCreate, created_by: Optional[int] = None) -> FormTemplateResponse:
        template = self._repo.create_template(data.model_dump(), created_by)
        logger.info(f"Form template created: {template['title']} (id={template['id']})")
        return FormTemplateResponse(**template)

    def update_template(self, template_id: int, data: FormTemplateUpdate) -> FormTemplateResponse:
        self._require_template(template_id)
        return FormTemplateResponse(**self._repo.update_template(template_id, data.model_dump(exclude_unset=True)))

    def delete_template(self, template_id: int) -> None:
        """Delete a template together with its submissions."""
        if not self._repo.delete_template(template_id):
            raise NotFoundError("Form template", template_id)
        logger.info(f"Form template deleted: {template_id}")

    def submit(self, template_id: int, data: FormSubmissionCreate,
               user_id: Optional[int] = None) -> FormSubmissionResponse:
        template = self._require_template(template_id)
        validate_submission(template["fields"], data.values)
        return FormSubmissionResponse(**self._repo.create_submission(template_id, data.values, user_id))

    def list_submissions(self, template_id: int) -> List[FormSubmissionResponse]:
        self._require_template(template_id)
        return [FormSubmissionResponse(**s) for s in self._repo.list_submissions(template_id)]

    def get_submission(self, submission_id: int) -> FormSubmissionResponse:
        submission = self._repo.get_submission(submission_id)
        if submission is None:
            raise NotFoundError("Form submission", submission_id)
        return FormSubmissionResponse(**submission)

    def delete_submission(self, submission_id: int) -> None:
        if not self._repo.delete_submission(submission_id):
            raise NotFoundError("Form submission", submission_id)
