# orderflow/models/store/document_models.py

from sqlalchemy import Column, String, JSON, Index

from orderflow.core.db import Base
from orderflow.models.base.mixins import RevisionMixin, TimestampMixin


class Document(Base, TimestampMixin, RevisionMixin):
    """One JSON document per record, keyed by (collection, doc_id)."""

    __tablename__ = "documents"

    collection = Column(String(64), primary_key=True)
    doc_id = Column(String(64), primary_key=True)

    data = Column(JSON, nullable=False)

    __table_args__ = (
        Index("ix_documents_collection", "collection"),
    )

    def __repr__(self):
        return f"<Document collection={self.collection} doc_id={self.doc_id} revision={self.revision}>"
