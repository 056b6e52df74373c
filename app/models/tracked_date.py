from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class TrackedDate(Base):
    """관리자가 등록한 날짜 모델"""
    __tablename__ = "dates"

    id = Column(Integer, primary_key=True, index=True)
    date_string = Column(String, unique=True, nullable=False, index=True)  # YYYY-MM-DD
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    attendances = relationship("Attendance", back_populates="tracked_date", cascade="all, delete-orphan", passive_deletes=True)

    def to_dict(self):
        return {"id": self.id, "date_string": self.date_string}

    def __repr__(self):
        return f"<TrackedDate(id={self.id}, date_string={self.date_string})>"
