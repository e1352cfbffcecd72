from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class Store(Base):
    """
    Store model - A rateable store, owned by exactly one STORE_OWNER user
    """
    __tablename__ = "stores"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(60), nullable=False, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    address = Column(String(400), nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    owner = relationship("User", back_populates="owned_store")
    ratings = relationship("Rating", back_populates="store", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Store(id={self.id}, name={self.name}, owner_id={self.owner_id})>"
