# group_archive/routes/webhook.py

from fastapi import APIRouter, Request
from typing import List
import logging

from group_archive.models import GroupSighting, InboundMessage

router = APIRouter(prefix="/webhook", tags=["webhook"])


@router.post("/groups")
async def receive_groups(groups: List[GroupSighting], request: Request):
    """Group list pushed by the client bridge on ready and on refresh"""
    logger = logging.getLogger(__name__)
    logger.info(f"Received {len(groups)} groups")
    return await request.app.state.ingestion.handle_groups(groups)


@router.post("/messages")
async def receive_message(message: InboundMessage, request: Request):
    """message_create / message events pushed by the client bridge"""
    return await request.app.state.ingestion.handle_message(message)
