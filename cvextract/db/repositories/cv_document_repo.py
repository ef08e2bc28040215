"""CvDocument repository. Bound to caller's session; does not commit."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cvextract.db.exceptions import NotFoundError
from cvextract.db.models.cv_document import CvDocument


class CvDocumentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, source_name: str) -> CvDocument:
        row = CvDocument(source_name=source_name, parsing_status="pending")
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, document_id: str) -> CvDocument | None:
        return (
            await self._session.execute(select(CvDocument).where(CvDocument.id == document_id))
        ).scalar_one_or_none()

    async def _require(self, document_id: str) -> CvDocument:
        row = await self.get(document_id)
        if row is None:
            raise NotFoundError(f"CV document {document_id} not found")
        return row

    async def set_status(self, document_id: str, status: str, *, error_code: str | None = None) -> None:
        row = await self._require(document_id)
        row.parsing_status = status
        row.error_code = error_code
        await self._session.flush()

    async def save_parsed(self, document_id: str, parsed_json: str, metadata_json: str | None) -> None:
        row = await self._require(document_id)
        row.parsed_json = parsed_json
        row.metadata_json = metadata_json
        row.parsing_status = "completed"
        row.error_code = None
        await self._session.flush()
