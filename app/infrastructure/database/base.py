# app/infrastructure/database/base.py
from sqlalchemy.orm import DeclarativeBase

class Base(DeclarativeBase):
    """
    DeclarativeBase for every ORM model in the service.
    """
    pass
