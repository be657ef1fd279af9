"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, HTTPException, Request
from payflow_deductions.api.sessions import DraftSessionStore
from payflow_deductions.domain.draft import DeductionDraftMachine
from payflow_deductions.infrastructure.clients.affordability import AffordabilityClient
from payflow_deductions.infrastructure.clients.deduction_requests import DeductionRequestClient
from payflow_deductions.infrastructure.clients.directory import DirectoryClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_session_store(request: Request) -> DraftSessionStore:
    """Provide the application's draft session store"""
    return request.app.state.drafts


def get_directory_client() -> DirectoryClient:
    """Provide employee directory client instance"""
    return DirectoryClient()


def get_affordability_client() -> AffordabilityClient:
    """Provide affordability scoring client instance"""
    return AffordabilityClient()


def get_deduction_request_client() -> DeductionRequestClient:
    """Provide deduction request persistence client instance"""
    return DeductionRequestClient()


def get_draft(draft_id: str, store: DraftSessionStore = Depends(get_session_store)) -> DeductionDraftMachine:
    """Resolve the draft machine for a wizard session or 404"""
    machine = store.get(draft_id)
    if machine is None:
        raise HTTPException(status_code=404, detail="Draft not found")
    return machine
