"""
Team Model.
Members are the users whose ``team_id`` points here; ``manager_id`` is the
manager whose analytics scope includes this team.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from performance_analytics.database import Base


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True, index=True)
    manager_id = Column(Integer, ForeignKey("users.id", use_alter=True, name="fk_team_manager_id"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    department = relationship("Department", back_populates="teams")
    manager = relationship("User", foreign_keys=[manager_id], back_populates="managed_teams")
    members = relationship("User", foreign_keys="User.team_id", back_populates="team")

    def __repr__(self):
        return f"<Team {self.id}: {self.name}>"
