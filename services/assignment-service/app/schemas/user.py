from pydantic import BaseModel, Field, ConfigDict, EmailStr
from typing import Optional, List
from datetime import datetime
from enum import Enum

class UserRoleEnum(str, Enum):
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"

class UserCreate(BaseModel):
    email: EmailStr
    role: UserRoleEnum = UserRoleEnum.USER
    skills: List[str] = Field(default_factory=list, description="Skills used to match tickets to moderators.")

class UserUpdate(BaseModel):
    role: Optional[UserRoleEnum] = None
    skills: Optional[List[str]] = Field(None, description="Replacement skill list; an empty list keeps the current skills.")

class UserResponse(BaseModel):
    id: int
    email: str
    role: UserRoleEnum
    skills: List[str] = []
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
