from fastapi import APIRouter, Depends, HTTPException

from readthis.schemas.books import RecommendIn, RecommendOut
from readthis.services.recommendations import BookRecommender, get_recommender

router = APIRouter(prefix="/books", tags=["books"])


@router.post("/recommend", response_model=RecommendOut)
async def recommend(
    payload: RecommendIn,
    recommender: BookRecommender = Depends(get_recommender),
):
    title = (payload.book_title or "").strip()
    if not title:
        raise HTTPException(status_code=400, detail="Book title is required.")
    return RecommendOut(recommendations=await recommender.recommend(title))
