from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class Attendance(Base):
    """날짜별 학생 외박/늦은 귀가 신청 모델"""
    __tablename__ = "attendance"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date_id = Column(Integer, ForeignKey("dates.id", ondelete="CASCADE"), nullable=False, index=True)
    coming = Column(String, nullable=False, default="NOT COMING")
    applied = Column(String, nullable=False, default="NOT APPLIED")
    attendance_1 = Column(String, nullable=False, default="ABSENT")  # Night Slip
    attendance_2 = Column(String, nullable=False, default="ABSENT")  # Late Hour
    is_locked = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="attendances")
    tracked_date = relationship("TrackedDate", back_populates="attendances")

    # 사용자와 날짜의 조합은 고유해야 함
    __table_args__ = (
        UniqueConstraint('user_id', 'date_id', name='uix_user_id_date_id'),
    )

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "date_id": self.date_id,
            "coming": self.coming,
            "applied": self.applied,
            "attendance_1": self.attendance_1,
            "attendance_2": self.attendance_2,
            "is_locked": self.is_locked,
        }

    def __repr__(self):
        return f"<Attendance(user_id={self.user_id}, date_id={self.date_id}, is_locked={self.is_locked})>"
