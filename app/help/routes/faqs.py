from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.auth.dependencies import get_identity
from app.auth.schemas.identity import Identity
from app.db.session import get_db
from app.help.schemas.faq import FaqCreate, FaqResponse
from app.help.services.faq_service import FaqService

router = APIRouter()


@router.get("/faqs", response_model=list[FaqResponse])
def list_faqs(
    category: str | None = Query(None, max_length=50),
    search: str | None = Query(None, max_length=200),
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> list[FaqResponse]:
    return [FaqResponse.model_validate(f) for f in FaqService(db).list_faqs(category, search)]


@router.get("/faqs/categories", response_model=list[str])
def list_faq_categories(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> list[str]:
    return FaqService(db).list_categories()


@router.post("/faqs", response_model=FaqResponse, status_code=status.HTTP_201_CREATED)
def create_faq(
    data: FaqCreate,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> FaqResponse:
    return FaqResponse.model_validate(FaqService(db).create_faq(identity, data))
