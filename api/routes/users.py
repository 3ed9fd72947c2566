from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Form
from typing import Any, Optional, Union
from core.database import get_profiles_collection
from schemas.user import Profile
from api.deps import get_current_user, get_current_admin_user
from services.cloudinary_service import cloudinary_service

router = APIRouter()


@router.get("/me", response_model=Profile)
async def read_user_me(current_user: Profile = Depends(get_current_user)) -> Any:
    """
    Get current user's profile
    """
    return current_user


@router.put("/me", response_model=Profile)
async def update_user_me(
    name: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    profile_image: Union[UploadFile, None] = File(None),
    current_user: Profile = Depends(get_current_user)
) -> Any:
    """
    Update current user's name, phone, and optionally profile image.
    """
    profiles_collection = get_profiles_collection()
    update_data = {}

    if name:
        update_data["name"] = name
    if phone:
        update_data["phone"] = phone

    # Handle profile image upload only if a file is provided
    if profile_image and profile_image.filename:
        file_content = await profile_image.read()
        upload_result = await cloudinary_service.upload_image(
            file_data=file_content,
            folder="user_profiles",
            public_id=f"user_{current_user.id}"
        )
        update_data["profile_image"] = upload_result["url"]

    if update_data:
        profiles_collection.update_one(
            {"_id": current_user.id},
            {"$set": update_data}
        )
        return profiles_collection.find_one({"_id": current_user.id})

    return current_user


@router.get("/{user_id}", response_model=Profile)
async def read_user_by_id(
        user_id: str,
        current_user: Profile = Depends(get_current_admin_user)
) -> Any:
    """
    Get a specific profile by id (admin only)
    """
    profiles_collection = get_profiles_collection()
    profile = profiles_collection.find_one({"_id": user_id})

    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    return profile
