"""Human-readable and JSON rendering of an ``AgentResponse``."""

import json
from datetime import datetime

from evotor_ai.models.response import AgentResponse, AppliedFilters, DocumentResults, ItemResults, Results


def format_date(value: str) -> str:
    """``YYYY-MM-DD`` of an RFC 3339 timestamp; unparseable values are returned as is."""
    if not value.strip():
        return "-"
    try:
        return datetime.fromisoformat(value.strip()).strftime("%Y-%m-%d")
    except ValueError:
        return value


def _filter_lines(filters: AppliedFilters) -> list[str]:
    lines = []
    if filters.date_from.strip() or filters.date_to.strip():
        lines.append(f"- период: {format_date(filters.date_from)} — {format_date(filters.date_to)}")
    if filters.store_id.strip():
        lines.append(f"- store_id: {filters.store_id}")
    return lines


def _item_lines(results: ItemResults) -> list[str]:
    lines = []
    for i, item in enumerate(results.items, start=1):
        line = f"{i}) {item.name} (id={item.item_id}"
        if item.price:
            line += f", цена={item.price:.2f}"
        if item.article_number:
            line += f", артикул={item.article_number}"
        if item.barcodes:
            line += f", штрихкод={item.barcodes[0]}"
        lines.append(line + ")")
    return lines


def _document_lines(results: DocumentResults) -> list[str]:
    lines = []
    for i, document in enumerate(results.documents, start=1):
        line = f"{i}) doc_id={document.doc_id}, дата={document.timestamp}, сумма={document.total:.2f}"
        if document.store_id:
            line += f", store={document.store_id}"
        if document.device_id:
            line += f", device={document.device_id}"
        lines.append(line)
    return lines


def _result_lines(results: Results) -> list[str]:
    if len(results) == 0:
        return ["- (нет результатов)"]
    if isinstance(results, ItemResults):
        return _item_lines(results)
    return _document_lines(results)


def format_human_report(response: AgentResponse) -> str:
    """Plain-text report: answer, filters, results, notes, next step and the query echo."""
    answer = response.answer_text.strip()
    lines = ["Ответ:", f"- {answer}" if answer else "- (empty response)"]

    if not response.applied_filters.is_empty():
        lines += ["", "Фильтры:", *_filter_lines(response.applied_filters)]

    if response.results is not None:
        lines += ["", "Результаты:", *_result_lines(response.results)]

    if response.notes:
        lines += ["", "Примечание:", *(f"- {note}" for note in response.notes)]

    if response.next_step.strip():
        lines += ["", "Следующий шаг:", f"- {response.next_step.strip()}"]

    lines += ["", f"Запрос: {response.query}"]
    return "\n".join(lines)


def format_json_report(response: AgentResponse) -> str:
    """One-line JSON object."""
    return json.dumps(response.to_report(), ensure_ascii=False)
