"""
User read model.
Role, team and department membership drive analytics visibility.
"""
from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from performance_analytics.database import Base


class UserRole(str, enum.Enum):
    """
    Platform roles, most to least privileged.

    - ADMIN: Organization-wide access
    - HR: Organization-wide access to people analytics
    - MANAGER: Teams they manage and their direct reports
    - EMPLOYEE: Self-service access to their own record
    """
    ADMIN = "admin"
    HR = "hr"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)

    role = Column(Enum(UserRole, values_callable=lambda roles: [r.value for r in roles]), default=UserRole.EMPLOYEE, nullable=False)

    department_id = Column(Integer, ForeignKey("departments.id", use_alter=True, name="fk_user_department_id"), nullable=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", use_alter=True, name="fk_user_team_id"), nullable=True, index=True)
    manager_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    department = relationship("Department", foreign_keys=[department_id], back_populates="employees")
    team = relationship("Team", foreign_keys=[team_id], back_populates="members")
    managed_teams = relationship("Team", foreign_keys="Team.manager_id", back_populates="manager")
    manager = relationship("User", remote_side=[id], back_populates="direct_reports")
    direct_reports = relationship("User", back_populates="manager")

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"

    @property
    def is_manager(self) -> bool:
        return self.role == UserRole.MANAGER
