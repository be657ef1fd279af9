"""In-memory registry of wizard sessions, one draft machine per session"""

import logging
from typing import Dict, Optional

from payflow_deductions.domain.draft import DeductionDraftMachine
from payflow_deductions.infrastructure.observability.metrics import active_drafts_gauge

logger = logging.getLogger(__name__)


class DraftSessionStore:
    """Draft machines keyed by draft id; nothing is shared between sessions"""

    def __init__(self):
        self._drafts: Dict[str, DeductionDraftMachine] = {}

    def add(self, machine: DeductionDraftMachine) -> DeductionDraftMachine:
        self._drafts[machine.draft_id] = machine
        active_drafts_gauge.set(len(self._drafts))
        logger.info(
            "Draft session opened",
            extra={"draft_id": machine.draft_id, "institution_id": machine.context.institution_id},
        )
        return machine

    def get(self, draft_id: str) -> Optional[DeductionDraftMachine]:
        return self._drafts.get(draft_id)

    def discard(self, draft_id: str) -> Optional[DeductionDraftMachine]:
        machine = self._drafts.pop(draft_id, None)
        active_drafts_gauge.set(len(self._drafts))
        return machine

    def __len__(self) -> int:
        return len(self._drafts)
