"""Base model for all persistence tables"""

import uuid
from sqlmodel import SQLModel


def generate_uuid() -> str:
    return str(uuid.uuid4())


class BaseModel(SQLModel):
    """Common parent of the SQLModel tables (shared metadata)"""
    pass
