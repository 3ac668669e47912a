# backend/database.py
from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from dotenv import load_dotenv

from config import settings

load_dotenv()

# 1. Database URL from settings (local SQLite by default)
SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# 2. SQLAlchemy expects postgresql:// rather than postgres://
if SQLALCHEMY_DATABASE_URL and SQLALCHEMY_DATABASE_URL.startswith("postgres://"):
    SQLALCHEMY_DATABASE_URL = SQLALCHEMY_DATABASE_URL.replace("postgres://", "postgresql://", 1)

# 3. Driver-specific connect args
if "sqlite" in SQLALCHEMY_DATABASE_URL:
    connect_args = {"check_same_thread": False} # SQLite only
else:
    connect_args = {}

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args=connect_args
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# Commit the enclosed unit of work, or roll all of it back on any error
@contextmanager
def atomic(db):
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise

def init_db():
    # Register every table on Base.metadata before creating them
    import models.users  # noqa: F401
    import models.reference  # noqa: F401
    import models.product  # noqa: F401
    import models.stock  # noqa: F401
    import models.exit_request  # noqa: F401
    import models.order  # noqa: F401
    import models.cart  # noqa: F401
    import models.inventory  # noqa: F401
    import models.log  # noqa: F401
    Base.metadata.create_all(bind=engine)
