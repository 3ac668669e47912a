# backend/models/users.py
from sqlalchemy import Column, Integer, String, DateTime
from database import Base
from utils.dates import utcnow

# Represents a user account with authentication details and system role
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="user")  # "user" or "manager"
    badge_number = Column(String, unique=True, nullable=True)
    created_at = Column(DateTime, default=utcnow)
