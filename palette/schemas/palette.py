"""Palette Schemas - Pydantic models with field-level validation for API boundaries.

Invariants:
    - Query text is capped at 500 chars; it is NOT stripped (whitespace-only means "blank")
    - SelectRequest names exactly one of index or result
    - Every action response carries the snapshot after the call and the navigations it issued

Design Decisions:
    - Snapshot typed as dict: SearchState.to_dict() is the single serializer
    - field_validator for side-effect-free transforms (strip) on free-text choices only
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from palette.core.domain_types import ResultType


class SessionCreate(BaseModel):
    """Mount request. Namespace scopes persisted history (one per browser profile)."""
    namespace: str = Field("default", min_length=1, max_length=100, pattern=r"^[\w.-]+$")


class QueryRequest(BaseModel):
    query: str = Field(max_length=500)


class FiltersRequest(BaseModel):
    filters: dict[str, Any] = Field(default_factory=dict)


class KeyRequest(BaseModel):
    """A key press as the browser reports it (KeyboardEvent.key plus modifiers)."""
    key: str = Field(min_length=1, max_length=32)
    ctrl: bool = False
    meta: bool = False
    shift: bool = False
    alt: bool = False


class ResultPayload(BaseModel):
    """A result chosen by the client (e.g. clicked), echoed back from a snapshot."""
    id: str = Field(min_length=1)
    type: ResultType
    title: str = Field(min_length=1)
    description: str | None = None
    url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class SelectRequest(BaseModel):
    """Commit by flat index into the current results, or by full result."""
    index: int | None = Field(None, ge=0)
    result: ResultPayload | None = None

    @model_validator(mode="after")
    def check_exactly_one(self) -> "SelectRequest":
        if (self.index is None) == (self.result is None):
            raise ValueError("provide exactly one of 'index' or 'result'")
        return self


class HighlightRequest(BaseModel):
    index: int


class ChoiceRequest(BaseModel):
    """A recent or popular search picked from the empty panel."""
    query: str = Field(min_length=1, max_length=500)

    @field_validator("query")
    @classmethod
    def strip_query(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("query cannot be empty or whitespace")
        return v


class SuggestionRequest(BaseModel):
    text: str = Field(min_length=1, max_length=500)

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("text cannot be empty or whitespace")
        return v


class PaletteSnapshot(BaseModel):
    """State snapshot plus the derived views a renderer needs."""
    state: dict[str, Any]
    sections: list[dict[str, Any]]
    empty_panel: dict[str, list[str]]


class SessionResponse(PaletteSnapshot):
    id: str
    namespace: str


class ActionResponse(PaletteSnapshot):
    navigations: list[str] = Field(default_factory=list)
    consumed: bool | None = None
    committed: bool | None = None
