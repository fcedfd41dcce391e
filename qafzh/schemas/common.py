from typing import Annotated, Generic, List, Optional, TypeVar
from pydantic import BaseModel, BeforeValidator, Field
from qafzh.constants import PHONE_REGEX
from qafzh.utils import normalize_phone

DataT = TypeVar("DataT")
ItemT = TypeVar("ItemT")

PhoneStr = Annotated[
    str,
    BeforeValidator(normalize_phone),
    Field(pattern=PHONE_REGEX, description="Phone number in international format, e.g. +967777123456"),
]

class ApiResponse(BaseModel, Generic[DataT]):
    status: str = "success"
    message: Optional[str] = None
    data: Optional[DataT] = None

class ErrorResponse(BaseModel):
    status: str = "fail"
    message: str
    data: Optional[dict] = None

class Page(BaseModel, Generic[ItemT]):
    items: List[ItemT]
    total: int
    current_page: int
    total_pages: int
    page_size: int
