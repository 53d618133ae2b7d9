from sqlalchemy import BigInteger, Column, Integer, Text, TIMESTAMP, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base
from pgvector.sqlalchemy import Vector

Base = declarative_base()


class ChunkRow(Base):
    """Mapped only for the pgvector distance query; documents are reached through raw SQL."""

    __tablename__ = "chunks"
    id = Column(BigInteger, primary_key=True)
    # documents(id) ON DELETE CASCADE lives in 001_init.sql
    document_id = Column(BigInteger, nullable=False)
    chunk_index = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    # dimension is fixed by the migration, not here
    embedding = Column(Vector(), nullable=False)
    details = Column("metadata", JSONB, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=text("NOW()"))
