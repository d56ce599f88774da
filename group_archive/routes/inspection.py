# group_archive/routes/inspection.py

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
import logging

from group_archive.core.backends import BackendAdapter
from group_archive.core.database import get_backend

router = APIRouter(prefix="/groups", tags=["inspection"])


def _unavailable(e: SQLAlchemyError):
    logging.getLogger(__name__).error(f"Storage read failed: {e}")
    return HTTPException(status_code=503, detail="Storage unavailable")


@router.get("")
def list_groups(backend: BackendAdapter = Depends(get_backend)):
    """All known groups, by name"""
    try:
        return backend.list_groups()
    except SQLAlchemyError as e:
        raise _unavailable(e)


@router.get("/{group_id}")
def get_group(group_id: str, backend: BackendAdapter = Depends(get_backend)):
    try:
        group = backend.get_group(group_id)
    except SQLAlchemyError as e:
        raise _unavailable(e)
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")
    return group


@router.get("/{group_id}/messages")
def list_messages(
    group_id: str,
    limit: int = Query(50, ge=1, le=500),
    backend: BackendAdapter = Depends(get_backend),
):
    """Newest messages of a group first"""
    try:
        return backend.list_messages(group_id, limit=limit)
    except SQLAlchemyError as e:
        raise _unavailable(e)


@router.get("/{group_id}/history")
def list_history(group_id: str, backend: BackendAdapter = Depends(get_backend)):
    """Snapshots of a group, oldest first"""
    try:
        return backend.list_history(group_id)
    except SQLAlchemyError as e:
        raise _unavailable(e)
