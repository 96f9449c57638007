from sqlalchemy import Column, Date, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base


class Education(Base):
    __tablename__ = "educations"

    id = Column(Integer, primary_key=True, index=True)
    candidate_id = Column(Integer, ForeignKey("candidates.id"), nullable=False, index=True)
    institution = Column(String(255), nullable=False)
    title = Column(String(255), nullable=True)  # degree name
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)  # open-ended when NULL

    candidate = relationship("Candidate", back_populates="educations")
