from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from db import Base

class SurveyRow(Base):
    __tablename__ = "surveys"
    survey_id = Column(String(64), primary_key=True)
    survey_name = Column(String(255), nullable=False)
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    questions = relationship("QuestionRow", back_populates="survey", cascade="all, delete-orphan",
                             passive_deletes=True, order_by="QuestionRow.id")

class QuestionRow(Base):
    __tablename__ = "questions"
    id = Column(Integer, primary_key=True, index=True)
    survey_id = Column(String(64), ForeignKey("surveys.survey_id", ondelete="CASCADE"), index=True, nullable=False)
    question_id = Column(String(64), nullable=False)
    question_type = Column(String(64), nullable=False)
    payload = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    survey = relationship("SurveyRow", back_populates="questions")
    __table_args__ = (UniqueConstraint("survey_id", "question_id", name="uq_question_per_survey"),)
