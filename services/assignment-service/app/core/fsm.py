from typing import Any, Dict, Optional
from sqlalchemy.orm import Session
from app.core.exceptions import InvalidTransitionError
from app.models.ticket import Ticket, AuditLog
from datetime import datetime

class TicketState:
    CREATED = "created"
    TRIAGING = "triaging"
    CLASSIFIED = "classified"
    ASSIGNED = "assigned"

# Forward-only, one stage at a time
STATE_ORDER = [TicketState.CREATED, TicketState.TRIAGING, TicketState.CLASSIFIED, TicketState.ASSIGNED]

VALID_TRANSITIONS = {
    TicketState.CREATED: [TicketState.TRIAGING],
    TicketState.TRIAGING: [TicketState.CLASSIFIED],
    TicketState.CLASSIFIED: [TicketState.ASSIGNED],
    TicketState.ASSIGNED: [],
}

def has_reached(current_state: str, state: str) -> bool:
    """True if current_state is state or any stage after it."""
    return STATE_ORDER.index(current_state) >= STATE_ORDER.index(state)

def history_entry(action: str, actor: str, previous_state: Optional[str], new_state: str,
                  reason: Optional[str], timestamp: datetime) -> Dict[str, Any]:
    return {
        "action": action,
        "actor": actor,
        "previous_state": previous_state,
        "new_state": new_state,
        "reason": reason,
        "timestamp": timestamp.isoformat()
    }

class TicketStateMachine:
    def __init__(self, db: Session):
        self.db = db

    def validate_transition(self, current_state: str, new_state: str):
        if new_state not in VALID_TRANSITIONS.get(current_state, []):
            raise InvalidTransitionError(current_state, new_state)

    def transition(self, ticket: Ticket, new_state: str, actor: str, action: str, reason: Optional[str] = None, metadata_info: Optional[Dict[str, Any]] = None) -> Ticket:
        """
        Transition a ticket to a new state and record the history atomically within the session.
        Does NOT commit. The caller must commit the transaction.
        """
        self.validate_transition(ticket.status, new_state)

        previous_state = ticket.status
        ticket.status = new_state

        timestamp = datetime.utcnow()

        # Reassign rather than mutate so the JSON column is flagged dirty
        current_history = list(ticket.history_log) if ticket.history_log is not None else []
        current_history.append(history_entry(action, actor, previous_state, new_state, reason, timestamp))
        ticket.history_log = current_history

        audit_entry = AuditLog(
            ticket_id=ticket.id,
            actor=actor,
            action=action,
            previous_state=previous_state,
            new_state=new_state,
            reason=reason,
            metadata_info=metadata_info or {},
            timestamp=timestamp
        )
        self.db.add(audit_entry)

        return ticket
