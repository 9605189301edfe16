"""Payloads returned by the user directory and the product catalog."""
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RemoteModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class RemoteAddress(RemoteModel):
    id: int
    street: str
    city: str
    state: str
    zip_code: str

    def snapshot(self) -> str:
        return f"{self.street}, {self.city}, {self.state} {self.zip_code}"


class RemoteUser(RemoteModel):
    id: int
    addresses: Optional[List[RemoteAddress]] = None


class RemoteProduct(RemoteModel):
    id: int
    name: str
    price: Decimal = Field(ge=0)
    stock_quantity: int


class StockAdjustment(RemoteModel):
    product_id: int
    quantity_change: int
