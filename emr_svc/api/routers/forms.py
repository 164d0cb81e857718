"""
Forms router - configurable form templates and their submissions.

A template is a list of typed fields; submissions are checked against
it (required fields, option lists, value types) and rejected with 400
and per-field errors otherwise.

Requires the "Medical Records" module permission matching the HTTP method.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from core.auth import CurrentUser, get_current_user, require_module_access
from core.dependencies import get_form_service
from schemas import (
    FormSubmissionCreate,
    FormSubmissionResponse,
    FormTemplateCreate,
    FormTemplateResponse,
    FormTemplateUpdate,
)
from services import FormService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/forms",
    tags=["Forms"],
    dependencies=[Depends(require_module_access("Medical Records"))],
)


@router.get(
    "/templates",
    response_model=List[FormTemplateResponse],
    summary="List form templates",
    description="With clinic_id, the clinic's templates plus the shared ones."
)
async def list_templates(
    clinic_id: Optional[int] = Query(None),
    form_service: FormService = Depends(get_form_service),
):
    return form_service.list_templates(clinic_id)


@router.post(
    "/templates",
    response_model=FormTemplateResponse,
    status_code=201,
    summary="Create a form template",
    description="Field names must be unique. radio and select fields need options."
)
async def create_template(
    template: FormTemplateCreate,
    current_user: CurrentUser = Depends(get_current_user),
    form_service: FormService = Depends(get_form_service),
):
    return form_service.create_template(template, created_by=current_user.id)


@router.get("/templates/{template_id}", response_model=FormTemplateResponse, summary="Get a form template")
async def get_template(template_id: int, form_service: FormService = Depends(get_form_service)):
    return form_service.get_template(template_id)


@router.put("/templates/{template_id}", response_model=FormTemplateResponse, summary="Update a form template")
async def update_template(template_id: int, template: FormTemplateUpdate,
                          form_service: FormService = Depends(get_form_service)):
    return form_service.update_template(template_id, template)


@router.delete("/templates/{template_id}", status_code=204, summary="Delete a form template",
               description="Also deletes every submission of the template.")
async def delete_template(template_id: int, form_service: FormService = Depends(get_form_service)):
    form_service.delete_template(template_id)


@router.get("/templates/{template_id}/submissions", response_model=List[FormSubmissionResponse],
            summary="List submissions of a template")
async def list_submissions(template_id: int, form_service: FormService = Depends(get_form_service)):
    return form_service.list_submissions(template_id)


@router.post(
    "/templates/{template_id}/submissions",
    response_model=FormSubmissionResponse,
    status_code=201,
    summary="Submit a form",
    description="Values are validated against the template. Unknown keys are rejected."
)
async def submit_form(
    template_id: int,
    submission: FormSubmissionCreate,
    current_user: CurrentUser = Depends(get_current_user),
    form_service: FormService = Depends(get_form_service),
):
    return form_service.submit(template_id, submission, user_id=current_user.id)


@router.get("/submissions/{submission_id}", response_model=FormSubmissionResponse, summary="Get a submission")
async def get_submission(submission_id: int, form_service: FormService = Depends(get_form_service)):
    return form_service.get_submission(submission_id)


@router.delete("/submissions/{submission_id}", status_code=204, summary="Delete a submission")
async def delete_submission(submission_id: int, form_service: FormService = Depends(get_form_service)):
    form_service.delete_submission(submission_id)
