"""Evotor API data models."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

T = TypeVar("T")


class EvotorModel(BaseModel):
    """Base for API payloads: unknown fields are ignored, nulls become defaults."""

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class Store(EvotorModel):
    id: str
    name: str = ""


class Item(EvotorModel):
    id: str
    name: str = ""
    price: float = 0.0
    code: str = ""
    barcodes: list[str] = Field(default_factory=list)
    article_number: str = ""
    measure_name: str = ""


class DocumentPosition(EvotorModel):
    product_id: str = ""
    name: str = ""
    product_name: str = ""
    quantity: float = 0.0
    price: float = 0.0
    sum: float = 0.0


class DocumentBody(EvotorModel):
    positions: list[DocumentPosition] = Field(default_factory=list)
    sum: float = 0.0
    total: float = 0.0

    def pick_total(self) -> float:
        """Document total: ``total`` when present, otherwise ``sum``."""
        return self.total if self.total else self.sum


class DocumentShort(EvotorModel):
    """Document summary as returned by the documents listing."""

    id: str
    type: str = ""
    close_date: str = ""
    device_id: str = ""
    store_id: str = ""
    body: DocumentBody = Field(default_factory=DocumentBody)
    total: float = 0.0


class DocumentFull(DocumentShort):
    """Document with all positions, as returned by the single-document endpoint."""

    def has_item(self, needle: str) -> bool:
        """Case-insensitive substring match on position ``name`` or ``product_name``."""
        needle = needle.strip().lower()
        if not needle:
            return False
        for position in self.body.positions:
            name = position.name.strip().lower()
            product_name = position.product_name.strip().lower()
            if (name and needle in name) or (product_name and needle in product_name):
                return True
        return False

    def to_short(self) -> DocumentShort:
        return DocumentShort(
            id=self.id,
            type=self.type,
            close_date=self.close_date,
            device_id=self.device_id,
            store_id=self.store_id,
            body=self.body,
            total=self.total,
        )


class Paging(EvotorModel):
    next_cursor: str | None = None


class ListResponse(EvotorModel, Generic[T]):
    """One page of a cursor-paginated listing."""

    items: list[T] = Field(default_factory=list)
    paging: Paging = Field(default_factory=Paging)


class SalesMetrics(EvotorModel):
    count: int
    total_sum: float
    store_id: str = ""
    # ``from`` is a keyword, hence the alias
    from_: str = Field(default="", alias="from")
    to: str = ""
    document_types: dict[str, int] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)
