"""Internal service-to-service endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from carhire.api.deps import get_db, verify_internal_key
from carhire.models.listing import Listing
from carhire.schemas.listing import ListingResponse, ListingSnapshot

router = APIRouter(dependencies=[Depends(verify_internal_key)])


@router.put("/listings/{listing_id}", response_model=ListingResponse)
async def upsert_listing(
    listing_id: UUID,
    snapshot: ListingSnapshot,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Listing:
    """Create or replace the booking-relevant snapshot of a catalog listing.

    Existing bookings keep the rate they were priced at.
    """
    result = await db.execute(select(Listing).where(Listing.id == listing_id))
    listing = result.scalar_one_or_none()

    values = snapshot.model_dump()
    values["currency"] = values["currency"].upper()
    if listing is None:
        listing = Listing(id=listing_id, **values)
        db.add(listing)
    else:
        for field, value in values.items():
            setattr(listing, field, value)

    await db.commit()
    await db.refresh(listing)
    return listing
