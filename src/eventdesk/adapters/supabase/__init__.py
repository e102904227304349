"""Supabase adapters: PostgREST gateway and Realtime change feed."""

from __future__ import annotations

from .gateway import PostgrestGateway
from .realtime import RealtimeFeed, decode_change, heartbeat_message, join_message, parse_message

__all__ = [
    "PostgrestGateway",
    "RealtimeFeed",
    "decode_change",
    "heartbeat_message",
    "join_message",
    "parse_message",
]
