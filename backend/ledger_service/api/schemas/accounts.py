from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AccountCreateRequest(CamelModel):
    account_number: str = Field(min_length=1, examples=["1000000001"])
    account_holder_name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    balance: Decimal | str = Field(
        ...,
        description="Initial balance, e.g. 100.00 or '100.00'",
        examples=["100.00"],
    )
    account_type: str = Field(default="SAVINGS", examples=["SAVINGS", "CHECKING"])
    reference: str | None = Field(default=None, description="Idempotency token")


class AccountStatusUpdateRequest(CamelModel):
    status: str = Field(min_length=1, examples=["FROZEN"])


class AccountResponse(CamelModel):
    id: str
    account_number: str
    account_holder_name: str
    email: str
    balance: str
    account_type: str
    status: str
    created_at: dt.datetime
    updated_at: dt.datetime
