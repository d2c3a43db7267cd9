from sqlalchemy import Column, String, DateTime, Text, Boolean, JSON, Index
from datetime import datetime
from .database import Base


class QuoteTemplateRecord(Base):
    """Named quote display configuration, scoped to one organization."""
    __tablename__ = "quote_templates"

    id = Column(String, primary_key=True)  # UUID
    org_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    # Trimmed, case-folded name; uniqueness is checked against this
    name_key = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    is_default = Column(Boolean, default=False)
    config_json = Column(JSON, nullable=False, default=dict)  # flat QuoteDisplayConfig
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_quote_templates_org_name_key", "org_id", "name_key"),
    )
