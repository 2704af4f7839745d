from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session
from app.core.exceptions import DuplicateRunError, TicketNotFoundError
from app.core.fsm import TicketState, TicketStateMachine, has_reached, history_entry
from app.models.ticket import AuditLog, Ticket

WORKFLOW_ACTOR = "assignment-workflow"

class TicketStore:
    """
    Ticket persistence used by the HTTP layer and the assignment workflow.
    Every mutating call commits exactly once, so each write is atomic at the
    single-ticket level.
    """

    def __init__(self, db: Session):
        self.db = db
        self.fsm = TicketStateMachine(db)

    def get(self, ticket_id: int) -> Optional[Ticket]:
        return self.db.query(Ticket).filter(Ticket.id == ticket_id).first()

    def load(self, ticket_id: int) -> Ticket:
        ticket = self.get(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)
        return ticket

    def create(self, title: str, description: str, created_by: int, deadline: Optional[datetime] = None) -> Ticket:
        """
        Persist a new ticket in the created state with its initial history entry and audit row.
        """
        try:
            ticket = Ticket(
                title=title,
                description=description,
                created_by=created_by,
                deadline=deadline,
                status=TicketState.CREATED
            )
            self.db.add(ticket)
            self.db.flush()

            timestamp = datetime.utcnow()
            reason = "Ticket filed"
            ticket.history_log = [history_entry("CREATE", str(created_by), None, TicketState.CREATED, reason, timestamp)]

            self.db.add(AuditLog(
                ticket_id=ticket.id,
                actor=str(created_by),
                action="CREATE",
                previous_state=None,
                new_state=TicketState.CREATED,
                reason=reason,
                timestamp=timestamp
            ))
            self.db.commit()
            self.db.refresh(ticket)
            return ticket
        except Exception:
            self.db.rollback()
            raise

    def update(self, ticket_id: int, **fields: Any) -> Ticket:
        """
        Partial field update in one commit, without a state change.
        Status moves go through claim() and advance(), which also record history.
        """
        ticket = self.load(ticket_id)
        for name, value in fields.items():
            setattr(ticket, name, value)
        self.db.commit()
        self.db.refresh(ticket)
        return ticket

    def claim(self, ticket_id: int, run_id: str) -> Ticket:
        """
        Take ownership of the ticket for `run_id` and move it to triaging.

        The ownership check is a single conditional UPDATE, so two runs for the
        same ticket cannot both win. Claiming again with the same run id is a no-op.
        """
        claimed = (
            self.db.query(Ticket)
            .filter(
                Ticket.id == ticket_id,
                or_(Ticket.workflow_run_id.is_(None), Ticket.workflow_run_id == run_id),
            )
            .update({Ticket.workflow_run_id: run_id}, synchronize_session=False)
        )
        if not claimed:
            self.db.rollback()
            ticket = self.load(ticket_id)
            raise DuplicateRunError(ticket_id, ticket.workflow_run_id)

        ticket = self.load(ticket_id)
        self.db.refresh(ticket)
        if ticket.status == TicketState.CREATED:
            self.fsm.transition(
                ticket=ticket,
                new_state=TicketState.TRIAGING,
                actor=WORKFLOW_ACTOR,
                action="triage",
                reason="Assignment workflow started",
                metadata_info={"run_id": run_id}
            )
        self.db.commit()
        self.db.refresh(ticket)
        return ticket

    def advance(self, ticket_id: int, new_state: str, action: str, reason: Optional[str] = None,
                metadata_info: Optional[Dict[str, Any]] = None, **fields: Any) -> Ticket:
        """
        Write `fields` and move the ticket to `new_state` in one commit.
        If the ticket already reached `new_state`, nothing is written.
        """
        ticket = self.load(ticket_id)
        if has_reached(ticket.status, new_state):
            return ticket

        for name, value in fields.items():
            setattr(ticket, name, value)
        self.fsm.transition(
            ticket=ticket,
            new_state=new_state,
            actor=WORKFLOW_ACTOR,
            action=action,
            reason=reason,
            metadata_info=metadata_info
        )
        self.db.commit()
        self.db.refresh(ticket)
        return ticket
