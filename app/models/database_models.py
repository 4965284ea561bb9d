"""
SQLAlchemy ORM models for the whitepaper history.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    LargeBinary,
    JSON,
)
from sqlalchemy.sql import func

from app.database import Base


class Whitepaper(Base):
    """A generated whitepaper, its rendered document and the request that produced it."""

    __tablename__ = "whitepapers"
    __mapper_args__ = {"eager_defaults": True}  # load created_at on flush

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=True, index=True)  # X-User-Id; NULL in demo mode

    # Request
    prompt = Column(Text, nullable=False)
    output_format = Column(String(10), nullable=False)  # pdf, docx, ppt, txt
    writing_style = Column(String(50), nullable=False)
    frameworks = Column(JSON, nullable=False, default=list)
    image_frequency = Column(String(100), nullable=True)
    num_pages = Column(Integer, nullable=False)

    # Result
    images_generated = Column(Integer, nullable=False, default=0)
    word_count = Column(Integer, nullable=False, default=0)
    pages_rendered = Column(Integer, nullable=False, default=0)
    filename = Column(String(255), nullable=False)
    mime_type = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    document = Column(LargeBinary, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Whitepaper(id={self.id}, format='{self.output_format}', pages={self.num_pages})>"
