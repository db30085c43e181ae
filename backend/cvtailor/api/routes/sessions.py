from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse, Response
from starlette import status

from backend.cvtailor.config import get_settings
from backend.cvtailor.core.pipeline import PipelineState
from backend.cvtailor.models.contracts import PipelineSnapshot, TailorForm
from backend.cvtailor.services.document_service import DocumentService
from backend.cvtailor.services.session_store import Session, SessionStore
from backend.cvtailor.utils.prometheus_metrics import record_document

router = APIRouter(prefix="/sessions", tags=["sessions"])

DOCUMENTS = {
    "adapted-cv": ("adapted_cv", "adapted_cv"),
    "cover-letter": ("cover_letter", "cover_letter"),
}
FORMATS = {"txt", "pdf", "docx"}


@lru_cache
def get_session_store() -> SessionStore:
    return SessionStore(limit=get_settings().session_limit)


def get_docs() -> DocumentService:
    return DocumentService()


def _load_session(store: SessionStore, session_id: str) -> Session:
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found (expired or invalid session id)")
    return session


def _snapshot(session: Session) -> PipelineSnapshot:
    snap = session.pipeline.snapshot()
    snap.session_id = session.session_id
    snap.notifications = session.notifier.drain()
    return snap


@router.post("", response_model=PipelineSnapshot, status_code=status.HTTP_201_CREATED)
def create_session(store: SessionStore = Depends(get_session_store)):
    return _snapshot(store.create())


@router.get("/{session_id}", response_model=PipelineSnapshot)
def get_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    return _snapshot(_load_session(store, session_id))


@router.post("/{session_id}/submit", response_model=PipelineSnapshot)
async def submit(
    session_id: str,
    form: TailorForm,
    store: SessionStore = Depends(get_session_store),
):
    session = _load_session(store, session_id)
    await session.pipeline.submit(form)
    snap = _snapshot(session)

    if snap.field_errors:
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif snap.state == PipelineState.ERROR.value:
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_200_OK
    return JSONResponse(status_code=code, content=snap.model_dump(mode="json"))


@router.post("/{session_id}/clear", response_model=PipelineSnapshot)
def clear(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = _load_session(store, session_id)
    session.pipeline.clear()
    return _snapshot(session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    if not store.delete(session_id):
        raise HTTPException(status_code=404, detail="Session not found (expired or invalid session id)")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{session_id}/download/{document}.{fmt}")
def download(
    session_id: str,
    document: str,
    fmt: str,
    store: SessionStore = Depends(get_session_store),
    docs: DocumentService = Depends(get_docs),
):
    if document not in DOCUMENTS or fmt not in FORMATS:
        raise HTTPException(status_code=404, detail=f"Unknown download: {document}.{fmt}")

    session = _load_session(store, session_id)
    attr, stem = DOCUMENTS[document]
    content = getattr(session.pipeline, attr)
    if not content:
        raise HTTPException(status_code=404, detail=f"No {document.replace('-', ' ')} available yet")

    filename = f"{stem}.{fmt}"
    if fmt == "pdf":
        f = docs.pdf(content, filename=filename)
    elif fmt == "docx":
        f = docs.docx(content, filename=filename)
    else:
        f = docs.text(content, filename=filename)

    record_document(document, fmt)
    return Response(
        content=f.data,
        media_type=f.content_type,
        headers={"Content-Disposition": f'attachment; filename="{f.filename}"'},
    )
