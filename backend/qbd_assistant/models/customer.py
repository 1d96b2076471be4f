"""Validation schemas for QuickBooks Desktop customers.

The end-user ID is never part of these payloads; it comes from configuration.
"""

from typing import Optional

from pydantic import EmailStr, Field

from qbd_assistant.models.base import QuickBooksModel


class Address(QuickBooksModel):
    """Billing or shipping address."""
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class CreateCustomer(QuickBooksModel):
    """Body for creating a customer."""
    name: str = Field(
        ...,
        min_length=1,
        max_length=41,
        description="Customer name in QuickBooks",
    )
    first_name: Optional[str] = Field(None, max_length=25)
    last_name: Optional[str] = Field(None, max_length=25)
    company_name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    fax: Optional[str] = Field(None, max_length=20)
    billing_address: Optional[Address] = None
    shipping_address: Optional[Address] = None
    note: Optional[str] = Field(None, max_length=4095)
    is_active: bool = True


class UpdateCustomer(QuickBooksModel):
    """Body for updating a customer.

    ``revision_number`` must be the value from the caller's latest read;
    QuickBooks rejects the update if the record changed since.
    """
    revision_number: str = Field(
        ...,
        min_length=1,
        description="QuickBooks revision number for optimistic locking",
    )
    name: Optional[str] = Field(None, min_length=1, max_length=41)
    first_name: Optional[str] = Field(None, max_length=25)
    last_name: Optional[str] = Field(None, max_length=25)
    company_name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    fax: Optional[str] = Field(None, max_length=20)
    billing_address: Optional[Address] = None
    shipping_address: Optional[Address] = None
    note: Optional[str] = Field(None, max_length=4095)
    is_active: Optional[bool] = None


class ListCustomersQuery(QuickBooksModel):
    """Query parameters for listing customers."""
    limit: int = Field(50, ge=1, le=100, description="Number of results per page (1-100)")
    cursor: Optional[str] = Field(None, description="Cursor for the next page of results")
