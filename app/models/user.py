from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class User(Base):
    """학생(마스터 데이터) 모델"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    reg_no = Column(String, nullable=True)
    email = Column(String, unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    attendances = relationship("Attendance", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)

    def to_dict(self):
        return {"id": self.id, "name": self.name, "reg_no": self.reg_no or "", "email": self.email}

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"
