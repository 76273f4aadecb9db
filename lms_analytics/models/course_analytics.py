from sqlalchemy import Column, Integer, Float, Numeric, ForeignKey, Date
from lms_analytics.core.database import Base

class CourseAnalytics(Base):
    """Daily traffic and revenue rollup of one course."""
    __tablename__ = "course_analytics"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), index=True, nullable=False)
    date = Column(Date, nullable=False, index=True)
    total_views = Column(Integer, default=0)
    total_enrollments = Column(Integer, default=0)
    total_revenue = Column(Numeric(10, 2), default=0)
    completion_rate = Column(Float, nullable=True)
    average_rating = Column(Float, nullable=True)
