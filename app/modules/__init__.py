"""
Modules package initialization.
Each functional module keeps its own models, schemas, services and api router.
"""

from app.modules import user_management
from app.modules import follows
from app.modules import posts
from app.modules import notifications
from app.modules import home_feed
