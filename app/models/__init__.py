from app.core.db.session import Base
from app.models.team import Team
from app.models.user import User

# Tracker models live with their module (app.modules.tracker.models)
# Do not import them here to avoid circular imports

__all__ = [
    "Base",
    "Team",
    "User",
]
