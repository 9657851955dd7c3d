from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError
from app.models.common import utcnow
from app.models.contact import CONTACT_STATUSES, Contact
from app.models.user import User
from app.services.audit import RequestMeta, record_admin_action
from app.services.pagination import Page, paginate


def submit_contact(
    db: Session, name: str, email: str, subject: str, message: str, meta: RequestMeta | None = None
) -> Contact:
    meta = meta or RequestMeta()
    contact = Contact(
        name=name.strip(),
        email=email.strip().lower(),
        subject=subject.strip(),
        message=message.strip(),
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
    )
    db.add(contact)
    db.commit()
    return contact


def list_contacts(db: Session, page: int = 1, limit: int = 10) -> Page:
    return paginate(db, select(Contact).order_by(Contact.created_at.desc()), page, limit)


def update_contact_status(
    db: Session, contact_id: str, status: str, admin: User, meta: RequestMeta | None = None
) -> Contact:
    if status not in CONTACT_STATUSES:
        raise ValidationError("Invalid status")
    contact = db.get(Contact, contact_id)
    if contact is None:
        raise NotFoundError("Contact message not found")

    previous = contact.status
    contact.status = status
    if status == "replied":
        contact.replied_at = utcnow()
        contact.replied_by_id = admin.id
    db.commit()

    record_admin_action(
        db,
        admin,
        "UPDATE_STATUS",
        "Contact",
        contact.id,
        {"old_status": previous, "new_status": status},
        meta,
    )
    return contact
