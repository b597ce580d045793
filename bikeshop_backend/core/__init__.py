from bikeshop_backend.core.config import settings
from bikeshop_backend.core.database import get_db, Base, get_db_session
