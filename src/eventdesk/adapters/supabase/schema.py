"""Pydantic models for PostgREST errors and Realtime (Phoenix) messages."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from eventdesk.domain.model import ChangeKind


class SupabaseBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PostgrestError(SupabaseBaseModel):
    message: str = ""
    code: str | None = None
    details: str | None = None
    hint: str | None = None


ROWS_ADAPTER: TypeAdapter[list[dict[str, Any]]] = TypeAdapter(list[dict[str, Any]])


class PhoenixMessage(SupabaseBaseModel):
    topic: str
    event: str
    payload: dict[str, Any] = Field(default_factory=dict)
    ref: str | None = None
    join_ref: str | None = None

    @field_validator("ref", "join_ref", mode="before")
    @classmethod
    def _ref_to_str(cls, value: object) -> object:
        return str(value) if isinstance(value, int) else value

    @field_validator("payload", mode="before")
    @classmethod
    def _null_payload(cls, value: object) -> object:
        return {} if value is None else value


class PostgresChange(SupabaseBaseModel):
    """``payload.data`` of a ``postgres_changes`` message."""

    table: str
    kind: ChangeKind = Field(alias="type")
    schema_name: str = Field(default="public", alias="schema")
    commit_timestamp: str | None = None
    record: dict[str, Any] | None = None
    old_record: dict[str, Any] | None = None

    @field_validator("record", "old_record", mode="before")
    @classmethod
    def _empty_to_none(cls, value: object) -> object:
        return value or None

    @property
    def old_id(self) -> str | None:
        if self.old_record is None:
            return None
        value = self.old_record.get("id")
        return str(value) if value is not None else None


class PostgresChangesPayload(SupabaseBaseModel):
    ids: list[int] = Field(default_factory=list)
    data: PostgresChange


class ReplyPayload(SupabaseBaseModel):
    status: str
    response: dict[str, Any] = Field(default_factory=dict)
