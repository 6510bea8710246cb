"""Request body models shared by several routers."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Category = Literal[
    "Grains & Cereals",
    "Vegetables",
    "Fruits",
    "Spices",
    "Oil & Ghee",
    "Dairy Products",
    "Other",
]


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class Location(BaseModel):
    """A delivery or pickup point."""

    model_config = ConfigDict(str_strip_whitespace=True)

    address: Optional[str] = None
    coordinates: Optional[Coordinates] = None


class Address(BaseModel):
    """Postal address of a business."""

    model_config = ConfigDict(str_strip_whitespace=True)

    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = Field(default=None, pattern=r"^\d{6}$")
    coordinates: Optional[Coordinates] = None


class Pagination(BaseModel):
    currentPage: int
    totalPages: int
    totalItems: int


def paginate(total: int, page: int, limit: int) -> dict:
    """Pagination block for list responses."""
    total_pages = (total + limit - 1) // limit if limit else 0
    return Pagination(currentPage=page, totalPages=total_pages, totalItems=total).model_dump()
