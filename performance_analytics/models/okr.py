from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from performance_analytics.database import Base


class Objective(Base):
    __tablename__ = "okrs"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String, default="active")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    owner = relationship("User")
    key_results = relationship(
        "KeyResult",
        back_populates="objective",
        order_by="KeyResult.position",
        cascade="all, delete-orphan",
    )


class KeyResult(Base):
    __tablename__ = "key_results"

    id = Column(Integer, primary_key=True, index=True)
    objective_id = Column(Integer, ForeignKey("okrs.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    position = Column(Integer, default=0, nullable=False)
    score = Column(Float, default=0.0)  # 0-10

    objective = relationship("Objective", back_populates="key_results")
