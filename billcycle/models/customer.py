from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel


class Customer(BaseModel):
    id: int
    name: str
    email: str = ""
    default_payment_method: str = ""


class Plan(BaseModel):
    id: int
    name: str
    price: Decimal
