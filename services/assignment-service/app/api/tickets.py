from typing import List, Optional
from datetime import datetime
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from app.core.db import get_db
from app.core.logger import get_logger
from app.core.store import TicketStore
from app.core.workflow import AssignmentWorkflow, get_assignment_workflow
from app.models.ticket import Ticket
from app.models.user import User
from app.schemas.ticket import TicketCreate, TicketResponse, TicketStateEnum, PriorityEnum

logger = get_logger(__name__)

router = APIRouter(prefix="/tickets", tags=["Tickets"])

@router.post("", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
def create_ticket(
    ticket_in: TicketCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    workflow: AssignmentWorkflow = Depends(get_assignment_workflow),
):
    """
    File a new support ticket.
    The ticket is stored as `created` and returned immediately; triage and
    assignment run afterwards in the background.
    """
    creator = db.query(User).filter(User.id == ticket_in.created_by).first()
    if not creator:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Creator not found")

    ticket = TicketStore(db).create(
        title=ticket_in.title,
        description=ticket_in.description,
        created_by=ticket_in.created_by,
        deadline=ticket_in.deadline,
    )
    logger.info(f"Ticket {ticket.id} created by user {ticket.created_by}")

    # Scheduled only after the ticket is committed
    background_tasks.add_task(workflow.run, ticket.id)
    return ticket


@router.get("", response_model=List[TicketResponse])
def get_tickets(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    status: Optional[TicketStateEnum] = None,
    priority: Optional[PriorityEnum] = None,
    assigned_to: Optional[int] = None,
    created_by: Optional[int] = None,
    date_start: Optional[datetime] = None,
    date_end: Optional[datetime] = None,
    db: Session = Depends(get_db)
):
    """
    Retrieve a list of tickets with optional filtering, newest first.
    """
    query = db.query(Ticket)

    if status is not None:
        query = query.filter(Ticket.status == status.value)
    if priority is not None:
        query = query.filter(Ticket.priority == priority.value)
    if assigned_to is not None:
        query = query.filter(Ticket.assigned_to == assigned_to)
    if created_by is not None:
        query = query.filter(Ticket.created_by == created_by)
    if date_start is not None:
        query = query.filter(Ticket.created_at >= date_start)
    if date_end is not None:
        query = query.filter(Ticket.created_at <= date_end)

    return query.order_by(Ticket.created_at.desc(), Ticket.id.desc()).offset(skip).limit(limit).all()


@router.get("/{ticket_id}", response_model=TicketResponse)
def get_ticket(ticket_id: int, db: Session = Depends(get_db)):
    """
    Retrieve a specific ticket by ID, including its history.
    """
    ticket = TicketStore(db).get(ticket_id)
    if not ticket:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ticket not found")
    return ticket
