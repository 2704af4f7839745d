from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, JSON
from app.core.db import Base

class User(Base):
    """
    Directory entry: who can file tickets and who can be assigned to them.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(String(20), nullable=False, default="user", index=True)
    skills = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)
