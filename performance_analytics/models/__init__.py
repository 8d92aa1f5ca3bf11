# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import user, department, team, okr, feedback

# Explicit class exports for cleaner imports
from .user import User, UserRole
from .department import Department
from .team import Team
from .okr import Objective, KeyResult
from .feedback import Feedback

__all__ = [
    "User",
    "UserRole",
    "Department",
    "Team",
    "Objective",
    "KeyResult",
    "Feedback",
]
