"""Document search and lookup tools."""

import time

from pydantic import Field, field_validator

from evotor_ai.models.evotor import DocumentFull, DocumentShort
from evotor_ai.models.response import DocumentResults, ResultDocument, ToolCallRecord
from evotor_ai.tools.args import DocumentLimit, LooseStr, Offset, Timestamp
from evotor_ai.tools.base import (
    STORE_ID_DESCRIPTION,
    ToolContext,
    ToolDefinition,
    ToolInput,
    ToolName,
    elapsed_ms,
    log_tool_record,
)


class SearchDocumentsInput(ToolInput):
    """Input schema for the document search tool."""

    date_from: Timestamp = Field(
        ...,
        alias="from",
        description="Start date in RFC3339 format (e.g., 2025-01-01T00:00:00Z). If not specified, use 7 days ago.",
    )
    date_to: Timestamp = Field(
        ...,
        alias="to",
        description="End date in RFC3339 format (e.g., 2025-01-31T23:59:59Z). If not specified, use now.",
    )
    limit: DocumentLimit = Field(
        default=50, description="Maximum number of documents to return (default: 50, max: 200)."
    )
    offset: Offset = Field(default=0, description="Number of documents to skip (for pagination).")
    item_query: LooseStr = Field(
        default="",
        description=(
            "Optional text to search for in document positions. If provided, fetches full documents and "
            "filters locally to find items matching this query (case-insensitive)."
        ),
    )
    store_id: LooseStr = Field(default="", description=STORE_ID_DESCRIPTION)


class GetDocumentInput(ToolInput):
    """Input schema for the document lookup tool."""

    doc_id: LooseStr = Field(..., description="Document ID to fetch.")
    store_id: LooseStr = Field(default="", description=STORE_ID_DESCRIPTION)

    @field_validator("doc_id")
    @classmethod
    def validate_doc_id(cls, v: str) -> str:
        if not v:
            raise ValueError("document id is required")
        return v


async def filter_documents_by_item(
    context: ToolContext,
    documents: list[DocumentShort],
    item_query: str,
    store_id: str | None,
) -> list[DocumentShort]:
    """Keep the documents that have a position matching ``item_query``.

    The API cannot search inside positions, so every summary is re-fetched in full
    and scanned locally. At most ``context.output_limit`` documents are returned,
    built from the full documents.
    """
    needle = item_query.strip().lower()
    if not needle:
        return documents

    matches: list[DocumentShort] = []
    for document in documents:
        args = {"doc_id": document.id}
        started = time.perf_counter()
        try:
            full_document = await context.client.get_document(document.id, store_id=store_id)
        except Exception as e:
            log_tool_record(ToolCallRecord.failed(ToolName.GET_DOCUMENT, args, str(e), elapsed_ms(started)))
            raise
        log_tool_record(ToolCallRecord(name=ToolName.GET_DOCUMENT, args=args, ms=elapsed_ms(started), ok=True))

        if full_document.has_item(needle):
            matches.append(full_document.to_short())
            if len(matches) >= context.output_limit:
                break
    return matches


async def search_documents(params: SearchDocumentsInput, context: ToolContext) -> list[DocumentShort]:
    store_id = context.resolve_store_id(params.store_id)
    documents = await context.client.search_documents(
        params.date_from,
        params.date_to,
        store_id=store_id,
        limit=params.limit,
        offset=params.offset,
    )
    if not params.item_query:
        return documents
    return await filter_documents_by_item(context, documents, params.item_query, store_id)


async def get_document(params: GetDocumentInput, context: ToolContext) -> DocumentFull:
    return await context.client.get_document(params.doc_id, store_id=context.resolve_store_id(params.store_id))


def documents_to_results(documents: list[DocumentShort]) -> DocumentResults:
    return DocumentResults(documents=[ResultDocument.from_document(document) for document in documents])


def document_to_results(document: DocumentFull) -> DocumentResults:
    return documents_to_results([document])


def create_search_documents_tool() -> ToolDefinition:
    return ToolDefinition(
        name=ToolName.SEARCH_DOCUMENTS,
        description=(
            "List documents for a period and store. Returns documents with id, timestamp, total, type, store_id, "
            "device_id. Types include SELL (sale), RETURN (return), REFUND (refund). Use item_query to filter "
            "documents that contain a specific item name in positions (this will fetch full documents and check "
            "positions locally). Default limit: 50."
        ),
        input_schema_class=SearchDocumentsInput,
        handler=search_documents,
        to_results=documents_to_results,
    )


def create_get_document_tool() -> ToolDefinition:
    return ToolDefinition(
        name=ToolName.GET_DOCUMENT,
        description=(
            "Fetch a single document with all positions. Returns document id, type (SELL/RETURN/REFUND), "
            "close_date, total, store_id, device_id, and positions with product_id, name, quantity, price, sum. "
            "Use for detailed inspection of specific documents."
        ),
        input_schema_class=GetDocumentInput,
        handler=get_document,
        to_results=document_to_results,
    )
