"""Turn results: tool call audit records, applied filters and the agent response."""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from evotor_ai.models.evotor import DocumentShort, Item


class ToolCallRecord(BaseModel):
    """Audit record of one dispatched tool call. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    ms: int = 0
    ok: bool
    err: str = ""

    @model_validator(mode="after")
    def _check_outcome(self) -> "ToolCallRecord":
        if self.ok and self.err:
            raise ValueError("successful tool call record cannot carry an error")
        if not self.ok and not self.err:
            raise ValueError("failed tool call record must carry an error")
        return self

    @classmethod
    def failed(cls, name: str, args: dict[str, Any], err: str, ms: int = 0) -> "ToolCallRecord":
        return cls(name=name, args=args, ms=ms, ok=False, err=err or "unknown error")


class AppliedFilters(BaseModel):
    """Date range (RFC 3339) and store the turn was scoped to."""

    date_from: str = ""
    date_to: str = ""
    store_id: str = ""

    def is_empty(self) -> bool:
        return not (self.date_from.strip() or self.date_to.strip() or self.store_id.strip())


class ResultItem(BaseModel):
    item_id: str
    name: str
    price: float = 0.0
    code: str = ""
    barcodes: list[str] = Field(default_factory=list)
    article_number: str = ""
    measure_name: str = ""

    @classmethod
    def from_item(cls, item: Item) -> "ResultItem":
        return cls(
            item_id=item.id,
            name=item.name,
            price=item.price,
            code=item.code,
            barcodes=item.barcodes,
            article_number=item.article_number,
            measure_name=item.measure_name,
        )


class ResultDocument(BaseModel):
    doc_id: str
    timestamp: str = ""
    total: float = 0.0
    store_id: str = ""
    device_id: str = ""

    @classmethod
    def from_document(cls, document: DocumentShort) -> "ResultDocument":
        return cls(
            doc_id=document.id,
            timestamp=document.close_date,
            total=document.total or document.body.pick_total(),
            store_id=document.store_id,
            device_id=document.device_id,
        )


class ItemResults(BaseModel):
    kind: Literal["items"] = "items"
    items: list[ResultItem] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.items)


class DocumentResults(BaseModel):
    kind: Literal["documents"] = "documents"
    documents: list[ResultDocument] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.documents)


Results = Annotated[ItemResults | DocumentResults, Field(discriminator="kind")]


class AgentResponse(BaseModel):
    """Outcome of one user turn. Returned to the caller, never retained."""

    query: str
    answer_text: str = ""
    applied_filters: AppliedFilters = Field(default_factory=AppliedFilters)
    results: Results | None = None
    tool_calls: list[ToolCallRecord] = Field(default_factory=list)
    next_step: str = ""
    notes: list[str] = Field(default_factory=list)

    def to_report(self) -> dict[str, Any]:
        """Machine-readable report; empty sections are omitted."""
        report: dict[str, Any] = {"query": self.query}
        if not self.applied_filters.is_empty():
            report["applied_filters"] = self.applied_filters.model_dump(exclude_defaults=True)
        report["answer_text"] = self.answer_text.strip()
        if self.results is not None:
            report["results"] = self.results.model_dump()
        if self.tool_calls:
            report["tool_calls"] = [record.model_dump() for record in self.tool_calls]
        if self.next_step.strip():
            report["next_step"] = self.next_step.strip()
        if self.notes:
            report["notes"] = list(self.notes)
        return report
