from sqlalchemy import Column, Integer, ForeignKey, DateTime, Numeric, Enum
from sqlalchemy.sql import func
from lms_analytics.core.database import Base
from lms_analytics.core.constants import PaymentStatusEnum

class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    course_id = Column(Integer, ForeignKey("courses.id"), index=True, nullable=True)
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(Enum(PaymentStatusEnum), nullable=False, default=PaymentStatusEnum.PENDING)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
