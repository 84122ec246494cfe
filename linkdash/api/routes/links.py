"""Routes for links within a dashboard session."""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from linkdash.adapters.session_store import DashboardSession
from linkdash.api.deps import get_session
from linkdash.api.schemas import (
    DirtyResponse,
    ErrorDetail,
    ExportBundle,
    ImportResponse,
    LinkDraftRequest,
    LinkListResponse,
    LinkOperationResponse,
    LinkResponse,
    MoveRequest,
    MoveResponse,
    SaveOrderResponse,
)
from linkdash.components.store import (
    DeleteLinkInput,
    DuplicateLinkInput,
    FilterInput,
    ImportLinksInput,
    LayeredLinkStore,
    MoveLinkInput,
    StoreError,
    StoreOperationOutput,
    UpdateLinkInput,
    UpsertLinkInput,
    run_create,
    run_delete,
    run_duplicate,
    run_export,
    run_import,
    run_list,
    run_move,
    run_save_order,
    run_update,
)

router = APIRouter()


# --- Helpers ---


def _draft(data: LinkDraftRequest) -> UpsertLinkInput:
    return UpsertLinkInput(
        name=data.name,
        url=data.url,
        group=data.group,
        description=data.description,
        open_in_frame=data.open_in_frame,
        layer=data.layer,
    )


def _raise_for_errors(errors: list[StoreError], refused: bool) -> None:
    if refused:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed")
    if not errors:
        return
    if errors[0].code == "link_not_found":
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Link not found")
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=[ErrorDetail.from_error(err).model_dump() for err in errors],
    )


def _operation_response(
    result: StoreOperationOutput, store: LayeredLinkStore
) -> LinkOperationResponse:
    _raise_for_errors(result.errors, result.refused)
    link = result.link
    assert link is not None  # Success guarantees link is not None
    return LinkOperationResponse(
        link=LinkResponse.from_link(link, store.can_edit(link)),
        warnings=[ErrorDetail.from_error(w) for w in result.warnings],
        persisted=result.persisted,
    )


# --- Routes ---


@router.get("/{session_id}/links", response_model=LinkListResponse)
def list_links(
    q: str = "",
    group: str = "",
    session: DashboardSession = Depends(get_session),
) -> LinkListResponse:
    """List the merged view, filtered by text query and group."""
    store = session.store
    result = run_list(store, FilterInput(query=q, group=group))
    return LinkListResponse(
        items=[LinkResponse.from_link(link, store.can_edit(link)) for link in result.links],
        total=result.total,
    )


@router.get("/{session_id}/groups", response_model=list[str])
def list_groups(session: DashboardSession = Depends(get_session)) -> list[str]:
    """Distinct groups in the merged view."""
    return session.store.groups()


@router.post("/{session_id}/links", response_model=LinkOperationResponse, status_code=201)
def create_link(
    data: LinkDraftRequest,
    session: DashboardSession = Depends(get_session),
) -> LinkOperationResponse:
    """Create a link in the personal layer, or the global layer for admins."""
    result = run_create(_draft(data), session.store)
    return _operation_response(result, session.store)


@router.put("/{session_id}/links/{link_id}", response_model=LinkOperationResponse)
def update_link(
    link_id: str,
    data: LinkDraftRequest,
    session: DashboardSession = Depends(get_session),
) -> LinkOperationResponse:
    """Edit a link; a change of layer moves it between collections."""
    result = run_update(UpdateLinkInput(link_id=link_id, draft=_draft(data)), session.store)
    return _operation_response(result, session.store)


@router.post(
    "/{session_id}/links/{link_id}/duplicate",
    response_model=LinkOperationResponse,
    status_code=201,
)
def duplicate_link(
    link_id: str,
    session: DashboardSession = Depends(get_session),
) -> LinkOperationResponse:
    """Duplicate a link into the same collection."""
    result = run_duplicate(DuplicateLinkInput(link_id=link_id), session.store)
    return _operation_response(result, session.store)


@router.delete("/{session_id}/links/{link_id}", response_model=LinkOperationResponse)
def delete_link(
    link_id: str,
    session: DashboardSession = Depends(get_session),
) -> LinkOperationResponse:
    """Delete a link."""
    result = run_delete(DeleteLinkInput(link_id=link_id), session.store)
    return _operation_response(result, session.store)


@router.post("/{session_id}/move", response_model=MoveResponse)
def move_link(
    data: MoveRequest,
    session: DashboardSession = Depends(get_session),
) -> MoveResponse:
    """Reorder within one collection. Not persisted until save-order."""
    result = run_move(MoveLinkInput(from_id=data.from_id, to_id=data.to_id), session.store)
    return MoveResponse(moved=result.success, reason=result.reason)


@router.get("/{session_id}/dirty", response_model=DirtyResponse)
def dirty_state(session: DashboardSession = Depends(get_session)) -> DirtyResponse:
    """Collections with unsaved changes."""
    state = session.store.dirty_state()
    return DirtyResponse(
        global_dirty=state.global_dirty, personal=list(state.personal), any=state.any
    )


@router.post("/{session_id}/save-order", response_model=SaveOrderResponse)
def save_order(session: DashboardSession = Depends(get_session)) -> SaveOrderResponse:
    """Persist every dirty collection."""
    result = run_save_order(session.store)
    return SaveOrderResponse(
        saved=result.saved,
        warnings=[ErrorDetail.from_error(w) for w in result.warnings],
        success=result.success,
    )


@router.post("/{session_id}/import", response_model=ImportResponse)
def import_links(
    payload: Any = Body(...),
    session: DashboardSession = Depends(get_session),
) -> ImportResponse:
    """Replace collections from a layered or legacy flat bundle (admins only)."""
    result = run_import(ImportLinksInput(payload=payload), session.store)
    _raise_for_errors(result.errors, result.refused)
    return ImportResponse(
        global_count=result.global_count,
        personal_counts=result.personal_counts,
        warnings=[ErrorDetail.from_error(w) for w in result.warnings],
    )


@router.get("/{session_id}/export")
def export_links(session: DashboardSession = Depends(get_session)) -> ExportBundle:
    """Export the visible collections."""
    return run_export(session.store)
