from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum

class TicketStateEnum(str, Enum):
    CREATED = "created"
    TRIAGING = "triaging"
    CLASSIFIED = "classified"
    ASSIGNED = "assigned"

class PriorityEnum(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

class AuditLogResponse(BaseModel):
    id: int
    ticket_id: int
    actor: str = Field(..., description="The actor performing the action.")
    action: str = Field(..., description="The action being performed.")
    previous_state: Optional[TicketStateEnum] = Field(None, description="The state of the ticket before the action.")
    new_state: TicketStateEnum = Field(..., description="The state of the ticket after the action.")
    reason: Optional[str] = Field(None, description="The rationale or reason for the state change.")
    metadata_info: Optional[Dict[str, Any]] = Field(None, description="Extra metadata.")
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class TicketBase(BaseModel):
    title: str = Field(..., description="Short summary of the problem.")
    description: str = Field(..., description="Full description of the problem.")
    status: TicketStateEnum = Field(TicketStateEnum.CREATED, description="The current status of the ticket.")
    priority: PriorityEnum = Field(PriorityEnum.MEDIUM, description="Priority set by classification.")
    helpful_notes: Optional[str] = Field(None, description="Notes from the classifier for the assignee.")
    related_skills: List[str] = Field(default_factory=list, description="Skills needed to handle the ticket.")
    assigned_to: Optional[int] = Field(None, description="The ID of the moderator or admin assigned to this ticket.")
    created_by: int = Field(..., description="The ID of the user who filed the ticket.")
    deadline: Optional[datetime] = None

class TicketCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255, description="Short summary of the problem.")
    description: str = Field(..., description="Full description of the problem.")
    created_by: int = Field(..., description="The ID of the user filing the ticket.")
    deadline: Optional[datetime] = None

class TicketResponse(TicketBase):
    id: int
    created_at: datetime
    updated_at: datetime
    history_log: List[Dict[str, Any]] = []

    model_config = ConfigDict(from_attributes=True)
