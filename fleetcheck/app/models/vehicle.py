"""
Vehicle and Trailer database models.
"""

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from fleetcheck.app.db.session import Base


class Vehicle(Base):
    """
    Vehicle model.

    ``archive_folder_id`` is filled in the first time an archive folder is
    created for the vehicle and reused for every later report upload.
    """
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    registration = Column(String(50), unique=True, nullable=False, index=True)
    model = Column(String(200), nullable=False)
    archive_folder_id = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Vehicle(id={self.id}, registration='{self.registration}')>"


class Trailer(Base):
    __tablename__ = "trailers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    number = Column(String(50), unique=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Trailer(id={self.id}, number='{self.number}')>"
