from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Form
from typing import Any, List, Optional
from pydantic import ValidationError
from core.database import (
    get_reviews_collection,
    get_restaurants_collection,
    get_orders_collection,
    get_profiles_collection,
    serialize,
    to_object_id
)
from schemas.order import OrderStatus
from schemas.review import Review, ReviewCreate, ReviewWithUser, ReviewWithRestaurant
from schemas.user import Profile
from api.deps import get_current_user
from services.cloudinary_service import cloudinary_service
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


def recalculate_restaurant_rating(restaurant_id: str) -> float:
    """Set the restaurant rating to the average of its reviews, 0 when there are none"""
    reviews_collection = get_reviews_collection()
    restaurants_collection = get_restaurants_collection()

    all_reviews = list(reviews_collection.find({"restaurant_id": restaurant_id}, {"rating": 1}))
    total_rating = sum(review.get("rating", 0) for review in all_reviews)
    avg_rating = total_rating / len(all_reviews) if all_reviews else 0

    restaurants_collection.update_one(
        {"_id": to_object_id(restaurant_id)},
        {"$set": {"rating": avg_rating}}
    )

    return avg_rating


@router.get("/restaurant/{restaurant_id}", response_model=List[ReviewWithUser])
async def get_restaurant_reviews(
        restaurant_id: str,
        skip: int = 0,
        limit: int = 100
) -> Any:
    """
    Get reviews of a restaurant with the reviewer's name and picture
    """
    reviews_collection = get_reviews_collection()
    profiles_collection = get_profiles_collection()

    reviews = list(
        reviews_collection.find({"restaurant_id": restaurant_id}).sort("created_at", -1).skip(skip).limit(limit)
    )

    for review in reviews:
        serialize(review)
        user = profiles_collection.find_one({"_id": review["user_id"]}, {"name": 1, "profile_image": 1})
        review["user"] = user or {"name": "User not found"}

    return reviews


@router.get("/me", response_model=List[ReviewWithRestaurant])
async def get_current_user_reviews(
        current_user: Profile = Depends(get_current_user),
        skip: int = 0,
        limit: int = 100
) -> Any:
    """
    Get all reviews created by the current user
    """
    reviews_collection = get_reviews_collection()
    restaurants_collection = get_restaurants_collection()

    reviews = list(reviews_collection.find({"user_id": current_user.id})
                   .sort("created_at", -1)
                   .skip(skip)
                   .limit(limit))

    for review in reviews:
        serialize(review)
        restaurant = restaurants_collection.find_one(
            {"_id": to_object_id(review["restaurant_id"])},
            {"name": 1, "featured_image": 1}
        )
        review["restaurant"] = serialize(restaurant) or {"name": "Restaurant not found"}

    return reviews


@router.post("/", response_model=Review, status_code=status.HTTP_201_CREATED)
async def create_review(
        restaurant_id: str = Form(...),
        order_id: str = Form(...),
        rating: int = Form(...),
        comment: Optional[str] = Form(None),
        images: List[UploadFile] = File(None),
        current_user: Profile = Depends(get_current_user)
) -> Any:
    """
    Review a delivered order, optionally with photos
    """
    reviews_collection = get_reviews_collection()
    orders_collection = get_orders_collection()

    try:
        review_in = ReviewCreate(restaurant_id=restaurant_id, order_id=order_id, rating=rating, comment=comment)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.errors()[0]["msg"]
        )

    order_oid = to_object_id(review_in.order_id)
    order = orders_collection.find_one({
        "_id": order_oid,
        "user_id": current_user.id
    }) if order_oid else None

    if not order or order["restaurant_id"] != review_in.restaurant_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found"
        )

    if order["status"] != OrderStatus.DELIVERED.value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only delivered orders can be reviewed"
        )

    if reviews_collection.find_one({"user_id": current_user.id, "order_id": review_in.order_id}):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You have already reviewed this order"
        )

    image_urls = []
    for i, image in enumerate(images or []):
        if image.filename:
            file_content = await image.read()
            upload_result = await cloudinary_service.upload_image(
                file_data=file_content,
                folder="reviews",
                public_id=f"review_{review_in.order_id}_{i}"
            )
            image_urls.append(upload_result["url"])

    review_data = {
        **review_in.dict(),
        "user_id": current_user.id,
        "images": image_urls,
        "created_at": datetime.utcnow()
    }

    result = reviews_collection.insert_one(review_data)
    created_review = reviews_collection.find_one({"_id": result.inserted_id})

    recalculate_restaurant_rating(review_in.restaurant_id)

    return serialize(created_review)


@router.delete("/{review_id}", status_code=status.HTTP_200_OK)
async def delete_review(
        review_id: str,
        current_user: Profile = Depends(get_current_user)
) -> Any:
    """
    Delete a review (author or admin)
    """
    reviews_collection = get_reviews_collection()

    review_oid = to_object_id(review_id)
    review = None
    if review_oid:
        if current_user.is_admin:
            review = reviews_collection.find_one({"_id": review_oid})
        else:
            review = reviews_collection.find_one({"_id": review_oid, "user_id": current_user.id})

    if not review:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Review not found"
        )

    reviews_collection.delete_one({"_id": review_oid})

    for url in review.get("images", []):
        if not await cloudinary_service.delete_image(url):
            logger.warning(f"Could not delete review image {url}")

    recalculate_restaurant_rating(review["restaurant_id"])

    return None
