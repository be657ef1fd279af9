"""Deduction draft wizard endpoints - one draft machine per wizard session"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request, Response

from payflow_deductions.api.dependencies import (
    get_affordability_client,
    get_deduction_request_client,
    get_directory_client,
    get_draft,
    get_request_id,
    get_session_store,
)
from payflow_deductions.api.sessions import DraftSessionStore
from payflow_deductions.api.v1.schemas import (
    CreateDraftRequest,
    DeductionRequestSchema,
    DraftUpdateRequest,
    DraftView,
    EmployeeSearchRequest,
    SearchResponse,
    SelectEmployeeRequest,
    SubmitResponse,
)
from payflow_deductions.config import settings
from payflow_deductions.domain.draft import EDITABLE_FIELDS, DeductionDraftMachine, WizardContext
from payflow_deductions.domain.exceptions import InvalidTransitionError, SubmissionRejected
from payflow_deductions.domain.models import DraftState
from payflow_deductions.infrastructure.clients.affordability import AffordabilityClient
from payflow_deductions.infrastructure.clients.deduction_requests import DeductionRequestClient
from payflow_deductions.infrastructure.clients.directory import DirectoryClient

router = APIRouter()


@router.post("/drafts", response_model=DraftView, status_code=201)
def create_draft(
    request_body: CreateDraftRequest,
    store: DraftSessionStore = Depends(get_session_store),
    directory: DirectoryClient = Depends(get_directory_client),
    affordability: AffordabilityClient = Depends(get_affordability_client),
    submissions: DeductionRequestClient = Depends(get_deduction_request_client),
):
    """Open a new wizard session for the requesting institution"""
    confirmation_required = request_body.require_affordability_confirmation
    if confirmation_required is None:
        confirmation_required = settings.require_affordability_confirmation

    machine = DeductionDraftMachine(
        context=WizardContext(
            institution_id=request_body.institution_id,
            require_affordability_confirmation=confirmation_required,
        ),
        directory=directory,
        affordability=affordability,
        submissions=submissions,
    )
    store.add(machine)
    return DraftView.from_machine(machine)


@router.get("/drafts/{draft_id}", response_model=DraftView)
def get_draft_view(machine: DeductionDraftMachine = Depends(get_draft)):
    return DraftView.from_machine(machine)


@router.post("/drafts/{draft_id}/employee-search", response_model=SearchResponse)
async def search_employees(
    request_body: EmployeeSearchRequest,
    machine: DeductionDraftMachine = Depends(get_draft),
):
    """
    Search the employee directory for this wizard.

    A blank query returns a validation message without calling the directory.
    Directory faults are reported in ``error`` with the previous results kept.
    """
    outcome = await machine.search_employees(request_body.query)
    return SearchResponse.from_outcome(outcome)


@router.post("/drafts/{draft_id}/employee", response_model=DraftView)
async def select_employee(
    request_body: SelectEmployeeRequest,
    machine: DeductionDraftMachine = Depends(get_draft),
):
    """Select one of the employees returned by the latest search"""
    employee = machine.resolver.find(request_body.employee_id)
    if employee is None:
        raise HTTPException(status_code=404, detail="Employee not found in current search results")

    try:
        await machine.select_employee(employee)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return DraftView.from_machine(machine)


@router.patch("/drafts/{draft_id}", response_model=DraftView)
async def update_draft(
    request_body: DraftUpdateRequest,
    machine: DeductionDraftMachine = Depends(get_draft),
):
    """Apply field edits; the end date and affordability are recomputed, never set"""
    changes = request_body.model_dump(exclude_unset=True)
    try:
        for field in EDITABLE_FIELDS:
            if field in changes:
                await machine.edit_field(field, changes[field])
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return DraftView.from_machine(machine)


@router.post("/drafts/{draft_id}/submit", response_model=SubmitResponse, status_code=201)
async def submit_draft(
    request: Request,
    machine: DeductionDraftMachine = Depends(get_draft),
):
    """
    Submit the draft as a deduction request.

    Flow:
    1. Refuse while a submission for this draft is already in flight
    2. Run the readiness guard; report every unmet clause
    3. Call the persistence service with a frozen snapshot
    4. Return the created request, or the retained draft with the failure
    """
    request_id = get_request_id(request)

    if machine.state is DraftState.SUBMITTING:
        raise HTTPException(status_code=409, detail="Submission already in progress")

    created = await machine.submit()
    if created is not None:
        return SubmitResponse(
            request=DeductionRequestSchema.from_domain(created),
            draft=DraftView.from_machine(machine),
        )

    if machine.state is DraftState.FAILED:
        error = machine.last_error
        logging.error(f"Deduction submission failed: {error}", extra={"request_id": request_id})
        status_code = 422 if isinstance(error, SubmissionRejected) else 502
        raise HTTPException(
            status_code=status_code,
            detail={
                "message": "Failed to create deduction request.",
                "error": str(error),
                "draft": DraftView.from_machine(machine).model_dump(mode="json"),
            },
        )

    raise HTTPException(
        status_code=422,
        detail={
            "message": "Please fill in all required fields including number of months.",
            "validation_errors": machine.last_validation_errors,
        },
    )


@router.delete("/drafts/{draft_id}", status_code=204)
def discard_draft(
    draft_id: str,
    store: DraftSessionStore = Depends(get_session_store),
    machine: DeductionDraftMachine = Depends(get_draft),
):
    """Abandon the wizard: reset the draft and close the session"""
    machine.reset()
    store.discard(draft_id)
    return Response(status_code=204)


@router.post("/drafts/{draft_id}/reset", response_model=DraftView)
def reset_draft(machine: DeductionDraftMachine = Depends(get_draft)):
    """Clear every field and start the wizard over within the same session"""
    machine.reset()
    return DraftView.from_machine(machine)
