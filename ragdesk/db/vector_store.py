"""
pgvector-backed VectorStore. Cosine distance is computed by Postgres (`<=>`).
"""
from typing import List

from sqlalchemy import delete, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from ..base import VectorStore
from ..errors import VectorDimensionMismatch
from ..models import Chunk, ChunkDetails, KnnHit
from .tables import ChunkRow


def _to_chunk(row: ChunkRow) -> Chunk:
    return Chunk(
        id=row.id,
        document_id=row.document_id,
        content=row.content,
        embedding=[float(x) for x in row.embedding],
        chunk_index=row.chunk_index,
        metadata=ChunkDetails.model_validate(row.details or {}),
        created_at=row.created_at,
    )


class PgVectorStore(VectorStore):
    def __init__(self, engine: Engine, dimension: int):
        self.engine = engine
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def insert(self, chunk: Chunk) -> Chunk:
        if len(chunk.embedding) != self._dimension:
            raise VectorDimensionMismatch(self._dimension, len(chunk.embedding))

        row = ChunkRow(
            document_id=chunk.document_id,
            chunk_index=chunk.chunk_index,
            content=chunk.content,
            embedding=list(chunk.embedding),
            details=chunk.metadata.model_dump(by_alias=True),
            created_at=chunk.created_at,
        )
        with Session(self.engine) as session, session.begin():
            session.add(row)
            session.flush()
            chunk_id = row.id
        return chunk.model_copy(update={"id": chunk_id})

    def knn_search(self, query_vector: List[float], top_k: int) -> List[KnnHit]:
        if len(query_vector) != self._dimension:
            raise VectorDimensionMismatch(self._dimension, len(query_vector))
        if top_k <= 0:
            return []

        distance = ChunkRow.embedding.cosine_distance(query_vector).label("distance")
        stmt = select(ChunkRow, distance).order_by(distance, ChunkRow.id).limit(top_k)
        with Session(self.engine) as session:
            rows = session.execute(stmt).all()
        return [KnnHit(_to_chunk(row), float(dist)) for row, dist in rows]

    def delete_by_document(self, document_id: int) -> int:
        with Session(self.engine) as session, session.begin():
            result = session.execute(delete(ChunkRow).where(ChunkRow.document_id == document_id))
            return result.rowcount or 0

    def count_by_document(self, document_id: int) -> int:
        stmt = select(func.count()).select_from(ChunkRow).where(ChunkRow.document_id == document_id)
        with Session(self.engine) as session:
            return session.execute(stmt).scalar_one()

    def list_by_document(self, document_id: int) -> List[Chunk]:
        stmt = select(ChunkRow).where(ChunkRow.document_id == document_id).order_by(ChunkRow.chunk_index)
        with Session(self.engine) as session:
            return [_to_chunk(row) for row in session.execute(stmt).scalars()]
