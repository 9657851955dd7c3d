from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.routers.deps import request_meta
from app.routers.responses import ok
from app.schemas.contact import ContactCreate
from app.services.audit import RequestMeta
from app.services.contacts import submit_contact

router = APIRouter(prefix="/contact", tags=["contact"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_contact(
    payload: ContactCreate,
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
) -> dict:
    contact = submit_contact(db, payload.name, payload.email, payload.subject, payload.message, meta)
    return ok({"id": contact.id}, message="Message sent successfully. We will get back to you soon!")
