"""Deduction draft state machine - the guarded wizard behind every deduction request.

Every draft follows the same lifecycle:

    EMPTY -> EMPLOYEE_SELECTED -> READY -> SUBMITTING -> [SUBMITTED|FAILED]
    EMPLOYEE_SELECTED <-> READY      (readiness re-evaluated on every edit)
    FAILED -> [READY|EMPLOYEE_SELECTED]
    any state -> EMPTY               (reset)

Local validation problems never raise; they show up in ``validation_errors()``
and ``draft.field_errors``. Gateway faults during search and assessment are
recovered in place; a failed submission moves to FAILED with every field kept.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, FrozenSet, List, Optional, Tuple

from payflow_deductions.config import settings
from payflow_deductions.domain.affordability import (
    AffordabilityVerdict,
    affordability_gate,
    affordability_verdict,
    ensure_assessable,
)
from payflow_deductions.domain.employee_search import EmployeeResolver, SearchOutcome
from payflow_deductions.domain.exceptions import (
    GatewayError,
    InvalidFieldError,
    InvalidTransitionError,
    SubmissionRejected,
    ValidationError,
)
from payflow_deductions.domain.interfaces import AffordabilityGateway, EmployeeDirectory, SubmissionGateway
from payflow_deductions.domain.models import (
    AffordabilityAssessment,
    AffordabilityStatus,
    DeductionDraft,
    DeductionRequest,
    DeductionType,
    DraftSnapshot,
    DraftState,
    Employee,
    Installment,
)
from payflow_deductions.domain.schedule import (
    MAX_AMOUNT,
    MAX_INSTALLMENTS,
    compute_end_date,
    compute_maturity_total,
    generate_installment_schedule,
    parse_installment_count,
    to_money,
)
from payflow_deductions.infrastructure.observability.logging import log_submission, log_transition
from payflow_deductions.infrastructure.observability.metrics import (
    record_affordability,
    record_submission,
    stale_response_counter,
)
from payflow_deductions.utils.date_utils import parse_iso_date

logger = logging.getLogger(__name__)

TRANSITIONS: Dict[DraftState, FrozenSet[DraftState]] = {
    DraftState.EMPTY: frozenset({DraftState.EMPLOYEE_SELECTED}),
    DraftState.EMPLOYEE_SELECTED: frozenset({DraftState.READY, DraftState.EMPTY}),
    DraftState.READY: frozenset({DraftState.EMPLOYEE_SELECTED, DraftState.SUBMITTING, DraftState.EMPTY}),
    DraftState.SUBMITTING: frozenset({DraftState.SUBMITTED, DraftState.FAILED, DraftState.EMPTY}),
    DraftState.SUBMITTED: frozenset({DraftState.EMPTY}),
    DraftState.FAILED: frozenset({DraftState.READY, DraftState.EMPLOYEE_SELECTED, DraftState.EMPTY}),
}

EDITABLE_FIELDS = (
    "deduction_type",
    "amount",
    "start_date",
    "number_of_installments",
    "is_reservation",
    "reason",
    "external_reference",
)
DERIVED_FIELDS = ("end_date", "affordability", "employee_id", "employer_institution_id")


@dataclass(frozen=True)
class WizardContext:
    """Who is drafting, and which affordability rule applies to the calling flow"""

    institution_id: str
    require_affordability_confirmation: bool = False


def _parse_amount(value) -> Tuple[Optional[Decimal], Optional[str]]:
    if value is None:
        return None, None
    text = str(value).strip().replace(",", "")
    if not text:
        return None, None
    try:
        amount = Decimal(text)
        if not amount.is_finite():
            return None, "Amount must be a number."
        if amount > MAX_AMOUNT:
            return None, "Amount is too large."
        return to_money(amount), None
    except InvalidOperation:
        return None, "Amount must be a number."


class DeductionDraftMachine:
    """
    One in-progress deduction request for one wizard session.

    Args:
        context: Requesting institution and affordability rule
        directory: Employee search collaborator
        affordability: Scoring collaborator
        submissions: Request persistence collaborator
        debounce_seconds: Delay before dispatching an assessment; a newer edit
            during the delay cancels the call
    """

    def __init__(
        self,
        context: WizardContext,
        directory: EmployeeDirectory,
        affordability: AffordabilityGateway,
        submissions: SubmissionGateway,
        debounce_seconds: float | None = None,
        draft_id: str | None = None,
    ):
        if not context.institution_id:
            raise ValueError("A wizard needs the requesting institution id")

        self.context = context
        self.draft_id = draft_id or str(uuid.uuid4())
        self.resolver = EmployeeResolver(directory)
        self.affordability_gateway = affordability
        self.submission_gateway = submissions
        self.debounce_seconds = (
            settings.affordability_debounce_seconds if debounce_seconds is None else debounce_seconds
        )

        self.state = DraftState.EMPTY
        self.draft = DeductionDraft()
        self.selected_employee: Optional[Employee] = None
        self.affordability_status = AffordabilityStatus.IDLE
        self.affordability_error: Optional[str] = None
        self.last_error: Optional[GatewayError] = None
        self.last_validation_errors: List[str] = []
        self.last_request: Optional[DeductionRequest] = None
        self.history: List[Tuple[DraftState, DraftState, str, float]] = []

        self._assessment_token = 0
        self._submission_token = 0

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        return not self.validation_errors()

    @property
    def maturity_total(self) -> Optional[Decimal]:
        months = self.draft.number_of_installments
        if self.draft.amount is None or months is None or not 1 <= months <= MAX_INSTALLMENTS:
            return None
        return compute_maturity_total(self.draft.amount, months)

    @property
    def verdict(self) -> AffordabilityVerdict:
        return affordability_verdict(self.draft.affordability)

    @property
    def submit_label(self) -> str:
        return "Create Reservation" if self.draft.is_reservation else "Create Request"

    def installments(self) -> List[Installment]:
        if self.draft.start_date is None:
            return []
        return generate_installment_schedule(
            self.draft.amount, self.draft.number_of_installments, self.draft.start_date
        )

    def validation_errors(self) -> List[str]:
        """Every readiness clause the draft currently fails, as user-facing text"""
        d = self.draft
        errors = []
        if not d.employee_id:
            errors.append("Please select an employee.")
        if d.deduction_type is DeductionType.UNSELECTED:
            errors.append("Please select a deduction type.")
        if d.amount is None or d.amount <= 0:
            errors.append("Please enter a valid amount.")
        if not d.reason.strip():
            errors.append("Please provide a reason.")
        if d.start_date is None:
            errors.append("Please select a start date.")
        if d.number_of_installments is None or d.number_of_installments < 1:
            errors.append("Please enter the number of months (at least 1).")

        blocked = affordability_gate(d.affordability, self.context.require_affordability_confirmation)
        if blocked:
            errors.append(blocked)
        return errors

    # ------------------------------------------------------------------
    # Employee step
    # ------------------------------------------------------------------

    async def search_employees(self, query: str) -> SearchOutcome:
        return await self.resolver.search(query)

    async def select_employee(self, employee: Employee) -> Optional[AffordabilityAssessment]:
        """
        Attach an employee to the draft.

        Re-runs the affordability check when an amount was entered before the
        employee was chosen.
        """
        self._ensure_editable("select_employee")
        if not employee.id or not employee.employer_institution_id:
            self.draft.field_errors["employee"] = "Selected employee has no employer institution."
            return None

        self.draft.field_errors.pop("employee", None)
        self.selected_employee = employee
        self.draft.employee_id = employee.id
        self.draft.employer_institution_id = employee.employer_institution_id
        if self.state is DraftState.EMPTY:
            self._transition(DraftState.EMPLOYEE_SELECTED, "select_employee")
        return await self._refresh_assessment("select_employee")

    # ------------------------------------------------------------------
    # Field edits
    # ------------------------------------------------------------------

    async def edit_field(self, field: str, value) -> None:
        """Generic entry point for UI field edits"""
        if field in DERIVED_FIELDS:
            raise InvalidFieldError(f"{field} cannot be edited directly")
        if field not in EDITABLE_FIELDS:
            raise InvalidFieldError(f"Unknown draft field: {field}")

        if field == "amount":
            await self.set_amount(value)
        else:
            getattr(self, f"set_{field}")(value)

    async def set_amount(self, value) -> Optional[AffordabilityAssessment]:
        self._ensure_editable("edit_amount")
        amount, error = _parse_amount(value)
        self._set_field_error("amount", error)

        if (
            amount is not None
            and amount == self.draft.amount
            and self.affordability_status in (AffordabilityStatus.AVAILABLE, AffordabilityStatus.PENDING)
        ):
            self._refresh_readiness("edit_amount")
            return self.draft.affordability

        self.draft.amount = amount
        return await self._refresh_assessment("edit_amount")

    def set_start_date(self, value) -> None:
        self._ensure_editable("edit_start_date")
        try:
            start = parse_iso_date(value)
            self._set_field_error("start_date", None)
        except (TypeError, ValueError):
            start = None
            self._set_field_error("start_date", "Start date must be a valid date (YYYY-MM-DD).")

        months = self.draft.number_of_installments
        if (
            start is not None
            and months is not None
            and 1 <= months <= MAX_INSTALLMENTS
            and compute_end_date(start, months) is None
        ):
            start = None
            self._set_field_error("start_date", "Start date leaves no room for the deduction to end.")
        self.draft.start_date = start
        self._recompute_end_date()
        self._refresh_readiness("edit_start_date")

    def set_number_of_installments(self, value) -> None:
        self._ensure_editable("edit_number_of_installments")
        count = parse_installment_count(value)
        error = None
        if count is None and value not in (None, ""):
            error = "Number of months must be a whole number."
        elif count is not None and count < 1:
            error = "Number of months must be at least 1."
        elif count is not None and count > MAX_INSTALLMENTS:
            error = f"Number of months cannot exceed {MAX_INSTALLMENTS}."
            count = None
        elif (
            count is not None
            and self.draft.start_date is not None
            and compute_end_date(self.draft.start_date, count) is None
        ):
            error = "Number of months runs past the last supported date."
            count = None
        self._set_field_error("number_of_installments", error)
        self.draft.number_of_installments = count
        self._recompute_end_date()
        self._refresh_readiness("edit_number_of_installments")

    def set_deduction_type(self, value) -> None:
        self._ensure_editable("edit_deduction_type")
        if isinstance(value, DeductionType):
            chosen = value
        else:
            try:
                chosen = DeductionType(str(value or DeductionType.UNSELECTED.value).strip().upper())
            except ValueError:
                chosen = DeductionType.UNSELECTED
                self._set_field_error("deduction_type", f"Unknown deduction type: {value}")
            else:
                self._set_field_error("deduction_type", None)
        self.draft.deduction_type = chosen
        self._refresh_readiness("edit_deduction_type")

    def set_reason(self, value) -> None:
        self._ensure_editable("edit_reason")
        self.draft.reason = (value or "").strip()
        self._refresh_readiness("edit_reason")

    def set_external_reference(self, value) -> None:
        self._ensure_editable("edit_external_reference")
        self.draft.external_reference = (value or "").strip()
        self._refresh_readiness("edit_external_reference")

    def set_is_reservation(self, value) -> None:
        self._ensure_editable("edit_is_reservation")
        self.draft.is_reservation = bool(value)
        self._refresh_readiness("edit_is_reservation")

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self) -> Optional[DeductionRequest]:
        """
        Submit the draft if it passes the readiness guard.

        Returns the created request, or None when nothing was created: a
        submission already in flight, a failing guard (see
        ``last_validation_errors``) or a gateway failure (see ``last_error``).
        """
        if self.state is DraftState.SUBMITTING:
            logger.warning("Submission already in progress", extra={"draft_id": self.draft_id})
            return None

        if self.state is DraftState.FAILED:
            self._refresh_readiness("retry_submission")

        self.last_validation_errors = self.validation_errors()
        if self.last_validation_errors or self.state is not DraftState.READY:
            return None

        snapshot = self._snapshot()
        self.last_error = None
        self._transition(DraftState.SUBMITTING, "submit")
        self._submission_token += 1
        token = self._submission_token
        start_time = time.time()

        try:
            request = await self.submission_gateway.submit(snapshot)
        except GatewayError as e:
            duration_ms = (time.time() - start_time) * 1000
            outcome = "rejected" if isinstance(e, SubmissionRejected) else "failed"
            record_submission(outcome)
            log_submission(self.draft_id, snapshot.employee_id, outcome, duration_ms, error=str(e))
            if token != self._submission_token:
                return None
            self.last_error = e
            self._transition(DraftState.FAILED, "submission_failed")
            return None
        except BaseException as e:
            # Cancellation or an unexpected fault; the draft must not stay SUBMITTING
            duration_ms = (time.time() - start_time) * 1000
            record_submission("interrupted")
            log_submission(self.draft_id, snapshot.employee_id, "interrupted", duration_ms, error=repr(e))
            if token == self._submission_token:
                self.last_error = GatewayError(
                    "Submission was interrupted before a response arrived; check for an existing request "
                    "before retrying.",
                    "deduction_requests",
                )
                self._transition(DraftState.FAILED, "submission_interrupted")
            raise

        duration_ms = (time.time() - start_time) * 1000
        record_submission("created")
        log_submission(self.draft_id, snapshot.employee_id, "created", duration_ms, request_id=request.id)
        if token != self._submission_token:
            logger.warning(
                "Draft was reset while its submission was in flight",
                extra={"draft_id": self.draft_id, "deduction_request_id": request.id},
            )
            return request

        self._clear_fields()
        self.last_request = request
        self._transition(DraftState.SUBMITTED, "submission_succeeded")
        return request

    def reset(self) -> None:
        """Abandon the draft: clears every field, the assessment and search results"""
        self._submission_token += 1
        self._clear_fields()
        self.resolver.clear()
        self.last_error = None
        self.last_validation_errors = []
        self.last_request = None
        self._transition(DraftState.EMPTY, "reset")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition(self, new_state: DraftState, trigger: str) -> None:
        old_state = self.state
        if new_state is old_state:
            return
        if new_state not in TRANSITIONS[old_state]:
            raise InvalidTransitionError(
                f"Cannot move draft from {old_state.value} to {new_state.value} ({trigger})"
            )
        self.state = new_state
        self.history.append((old_state, new_state, trigger, time.time()))
        log_transition(self.draft_id, self.context.institution_id, old_state.value, new_state.value, trigger)

    def _ensure_editable(self, trigger: str) -> None:
        if self.state is DraftState.SUBMITTING:
            raise InvalidTransitionError(f"Draft is being submitted; {trigger} is not allowed")
        if self.state is DraftState.SUBMITTED:
            # The submitted draft was already cleared; start a fresh one
            self.last_request = None
            self._transition(DraftState.EMPTY, trigger)

    def _refresh_readiness(self, trigger: str) -> None:
        if self.state in (DraftState.EMPTY, DraftState.SUBMITTING, DraftState.SUBMITTED):
            return
        target = DraftState.READY if self.is_ready else DraftState.EMPLOYEE_SELECTED
        self._transition(target, trigger)

    def _recompute_end_date(self) -> None:
        end_date = compute_end_date(self.draft.start_date, self.draft.number_of_installments)
        if end_date is not None:
            self.draft.end_date = end_date

    def _set_field_error(self, name: str, message: Optional[str]) -> None:
        if message:
            self.draft.field_errors[name] = message
        else:
            self.draft.field_errors.pop(name, None)

    def _invalidate_assessment(self) -> int:
        self._assessment_token += 1
        self.draft.affordability = None
        self.affordability_status = AffordabilityStatus.IDLE
        self.affordability_error = None
        return self._assessment_token

    async def _refresh_assessment(self, trigger: str) -> Optional[AffordabilityAssessment]:
        # The old assessment is gone before any new request is issued
        token = self._invalidate_assessment()
        self._refresh_readiness(trigger)

        employee_id, amount = self.draft.employee_id, self.draft.amount
        try:
            ensure_assessable(employee_id, amount)
        except ValidationError:
            return None

        self.affordability_status = AffordabilityStatus.PENDING
        if self.debounce_seconds > 0:
            await asyncio.sleep(self.debounce_seconds)
            if token != self._assessment_token:
                return None

        try:
            assessment = await self.affordability_gateway.assess(employee_id, amount)
        except GatewayError as e:
            if token != self._assessment_token:
                stale_response_counter.labels(operation="affordability").inc()
                return None
            record_affordability(None)
            logger.warning(f"Affordability check failed: {e}", extra={"draft_id": self.draft_id})
            self.affordability_status = AffordabilityStatus.FAILED
            self.affordability_error = str(e)
            self._refresh_readiness("affordability_failed")
            return None

        if token != self._assessment_token:
            stale_response_counter.labels(operation="affordability").inc()
            logger.debug("Discarded stale affordability assessment", extra={"draft_id": self.draft_id})
            return None

        record_affordability(assessment.can_afford)
        self.draft.affordability = assessment
        self.affordability_status = AffordabilityStatus.AVAILABLE
        self._refresh_readiness("affordability_received")
        return assessment

    def _clear_fields(self) -> None:
        self._invalidate_assessment()
        self.draft = DeductionDraft()
        self.selected_employee = None

    def _snapshot(self) -> DraftSnapshot:
        d = self.draft
        return DraftSnapshot(
            requesting_institution_id=self.context.institution_id,
            employee_id=d.employee_id,
            employer_institution_id=d.employer_institution_id,
            deduction_type=d.deduction_type,
            amount=d.amount,
            start_date=d.start_date,
            end_date=d.end_date,
            number_of_installments=d.number_of_installments,
            reason=d.reason,
            external_reference=d.external_reference or None,
            is_reservation=d.is_reservation,
        )
