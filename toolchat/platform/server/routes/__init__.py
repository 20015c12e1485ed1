from fastapi import APIRouter

from toolchat.platform.server.routes.base import base_router
from toolchat.platform.server.routes.chats import chats_router
from toolchat.platform.server.routes.conversations import conversations_router

root = APIRouter()
root.include_router(base_router)
root.include_router(chats_router)
root.include_router(conversations_router)
