from fastapi import APIRouter, Depends, HTTPException, status
from typing import Any, List
from bson import ObjectId
from core.database import get_addresses_collection, serialize, to_object_id
from schemas.address import Address, AddressCreate, AddressUpdate
from api.deps import get_current_user, get_view_cache
from schemas.user import Profile
from services.view_cache import ViewCache
from datetime import datetime

router = APIRouter()


def get_user_address_or_404(address_id: str, user_id: str) -> dict:
    addresses_collection = get_addresses_collection()

    address_oid = to_object_id(address_id)
    address = addresses_collection.find_one({
        "_id": address_oid,
        "user_id": user_id
    }) if address_oid else None

    if not address:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Address not found"
        )

    return address


def make_default(user_id: str, address_oid: ObjectId):
    """Clear the default flag on the user's other addresses and set it on this one"""
    addresses_collection = get_addresses_collection()

    addresses_collection.update_many(
        {"user_id": user_id, "_id": {"$ne": address_oid}},
        {"$set": {"is_default": False}}
    )
    addresses_collection.update_one(
        {"_id": address_oid},
        {"$set": {"is_default": True, "updated_at": datetime.utcnow()}}
    )


@router.get("/", response_model=List[Address])
async def get_user_addresses(
        current_user: Profile = Depends(get_current_user)
) -> Any:
    """
    Get user's addresses, default first
    """
    addresses_collection = get_addresses_collection()
    addresses = addresses_collection.find({"user_id": current_user.id}).sort("is_default", -1)
    return [serialize(address) for address in addresses]


@router.post("/", response_model=Address, status_code=status.HTTP_201_CREATED)
async def create_address(
        address_in: AddressCreate,
        current_user: Profile = Depends(get_current_user)
) -> Any:
    """
    Add a delivery address; a user's first address is always the default
    """
    addresses_collection = get_addresses_collection()

    is_first = addresses_collection.count_documents({"user_id": current_user.id}) == 0

    now = datetime.utcnow()
    result = addresses_collection.insert_one({
        **address_in.dict(exclude={"is_default"}),
        "is_default": False,
        "user_id": current_user.id,
        "created_at": now,
        "updated_at": now
    })

    if is_first or address_in.is_default:
        make_default(current_user.id, result.inserted_id)

    return serialize(addresses_collection.find_one({"_id": result.inserted_id}))


@router.get("/{address_id}", response_model=Address)
async def get_address(
        address_id: str,
        current_user: Profile = Depends(get_current_user)
) -> Any:
    """
    Get a specific address
    """
    return serialize(get_user_address_or_404(address_id, current_user.id))


@router.put("/{address_id}", response_model=Address)
async def update_address(
        address_id: str,
        address_in: AddressUpdate,
        current_user: Profile = Depends(get_current_user),
        view_cache: ViewCache = Depends(get_view_cache)
) -> Any:
    """
    Update an address
    """
    addresses_collection = get_addresses_collection()
    address = get_user_address_or_404(address_id, current_user.id)

    # Unsetting the default is done by choosing another default address
    update_data = address_in.dict(exclude_unset=True, exclude={"is_default"})
    if update_data:
        update_data["updated_at"] = datetime.utcnow()
        addresses_collection.update_one({"_id": address["_id"]}, {"$set": update_data})

    if address_in.is_default:
        make_default(current_user.id, address["_id"])

    # Order details embed the delivery address
    view_cache.invalidate(("order",))

    return serialize(addresses_collection.find_one({"_id": address["_id"]}))


@router.put("/{address_id}/default", response_model=Address)
async def set_default_address(
        address_id: str,
        current_user: Profile = Depends(get_current_user)
) -> Any:
    """
    Make an address the default one
    """
    address = get_user_address_or_404(address_id, current_user.id)
    make_default(current_user.id, address["_id"])
    return serialize(get_addresses_collection().find_one({"_id": address["_id"]}))


@router.delete("/{address_id}", status_code=status.HTTP_200_OK)
async def delete_address(
        address_id: str,
        current_user: Profile = Depends(get_current_user),
        view_cache: ViewCache = Depends(get_view_cache)
) -> Any:
    """
    Delete an address; if it was the default, another one takes its place
    """
    addresses_collection = get_addresses_collection()
    address = get_user_address_or_404(address_id, current_user.id)

    addresses_collection.delete_one({"_id": address["_id"]})

    if address.get("is_default", False):
        replacement = addresses_collection.find_one({"user_id": current_user.id})
        if replacement:
            make_default(current_user.id, replacement["_id"])

    view_cache.invalidate(("order",))

    return None
