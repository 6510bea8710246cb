"""Supplier directory endpoints."""

import logging
import re
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from groupbuy.api.dependencies import get_current_user, get_store
from groupbuy.api.exceptions import PermissionDeniedError, ResourceNotFoundError
from groupbuy.api.responses import success
from groupbuy.api.schemas import Address, Category, paginate
from groupbuy.store.database import Store
from groupbuy.store.documents import new_supplier_document, parse_object_id

# Configure module logger
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(
    prefix="/suppliers",
    tags=["suppliers"],
)

# Roles allowed to register suppliers
SUPPLIER_MANAGER_ROLES = ("supplier", "admin")


class ContactPerson(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None


class BusinessDetails(BaseModel):
    gstNumber: Optional[str] = None
    panNumber: Optional[str] = None
    tradeLicense: Optional[str] = None
    businessType: Optional[str] = None


class ServiceArea(BaseModel):
    city: str
    radius: float = Field(..., gt=0)


class SupplierProduct(BaseModel):
    name: str = Field(..., min_length=1)
    category: Category
    currentPrice: float = Field(..., gt=0)
    unit: str = "kg"
    minimumOrder: Optional[float] = Field(default=None, ge=0)
    maxSupply: Optional[float] = Field(default=None, ge=0)
    qualityGrade: Optional[str] = None
    certifications: List[str] = []


class PaymentTerms(BaseModel):
    acceptedMethods: List[str] = []
    creditDays: Optional[int] = Field(default=None, ge=0)
    advancePercentage: Optional[float] = Field(default=None, ge=0, le=100)


class SupplierCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=2)
    contactPerson: Optional[ContactPerson] = None
    businessDetails: Optional[BusinessDetails] = None
    address: Optional[Address] = None
    serviceAreas: List[ServiceArea] = []
    categories: List[Category] = []
    products: List[SupplierProduct] = []
    paymentTerms: Optional[PaymentTerms] = None


@router.get("")
def list_suppliers(
    category: Optional[Category] = None,
    city: Optional[str] = None,
    verified: Optional[bool] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    """Active suppliers, best rated first."""
    query: Dict[str, Any] = {"isActive": True}
    if category:
        query["categories"] = category
    if city:
        query["address.city"] = {"$regex": f"^{re.escape(city)}$", "$options": "i"}
    if verified is not None:
        query["isVerified"] = verified

    total = store.suppliers.count_documents(query)
    suppliers = list(
        store.suppliers.find(query)
        .sort([("ratings.overall", -1), ("createdAt", -1)])
        .skip((page - 1) * limit)
        .limit(limit)
    )
    return success({"suppliers": suppliers, "pagination": paginate(total, page, limit)})


@router.post("", status_code=status.HTTP_201_CREATED)
def create_supplier(
    body: SupplierCreate,
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    """Register a supplier. Only supplier and admin accounts may do this."""
    if user.get("role") not in SUPPLIER_MANAGER_ROLES:
        raise PermissionDeniedError("Only suppliers and admins can register suppliers")

    supplier = new_supplier_document(body.model_dump(exclude_none=True))
    supplier["_id"] = store.suppliers.insert_one(supplier).inserted_id

    logger.info(
        "Supplier registered",
        extra={"supplier_id": str(supplier["_id"]), "user_id": str(user["_id"])},
    )

    return success(
        supplier,
        message="Supplier created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/{supplier_id}")
def get_supplier(
    supplier_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    supplier = store.suppliers.find_one({"_id": parse_object_id(supplier_id, "Supplier")})
    if supplier is None:
        raise ResourceNotFoundError("Supplier", supplier_id)
    return success(supplier)
