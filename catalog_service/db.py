import os

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

DB_URL= os.getenv("DATABASE_URL", "sqlite:///./catalog.db")

connect_args= {"check_same_thread": False} if DB_URL.startswith("sqlite") else {}
engine= create_engine(DB_URL, pool_pre_ping=True, connect_args=connect_args)
SessionLocal= sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base= declarative_base()

def init_db(bind=None):
    # models must be imported so their tables are registered on Base.metadata
    from . import models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)

class ToDictMixIn:
    def to_dict(self):
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}
