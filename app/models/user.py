import enum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    STORE_OWNER = "STORE_OWNER"
    NORMAL_USER = "NORMAL_USER"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(60), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    address = Column(String(400), nullable=True)
    role = Column(Enum(Role, name="user_role"), nullable=False, default=Role.NORMAL_USER, index=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    ratings = relationship("Rating", back_populates="user", cascade="all, delete-orphan")
    # One store per owner; removing the owner removes the store too
    owned_store = relationship("Store", back_populates="owner", uselist=False, cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
