"""External persons: client companies' contacts, contractors and service providers."""
from datetime import datetime, timezone
import logging
import re
import uuid

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from felka.core.errors import NotFoundError, PolicyViolation, ValidationError
from felka.models.external_person import ExternalPerson
from felka.schemas.external_person import ExternalPersonIn, ExternalPersonPatch
from felka.services.audit_service import log_audit

logger = logging.getLogger(__name__)

PERSON_TYPES = ("client", "contractor", "provider")
STATUSES = ("active", "inactive", "blocked")

# Modules every person of a type gets regardless of the explicit selection
AUTO_MODULES = {
    "client": ["cargo-scheduling"],
    "contractor": ["access-control"],
    "provider": ["access-control"],
}


def normalize_document(document: str) -> str:
    """CPF digits only; punctuation such as 123.456.789-09 is dropped."""
    return re.sub(r"\D", "", document or "")


def effective_modules(person_type: str, modules: list[str]) -> list[str]:
    out = list(AUTO_MODULES.get(person_type, []))
    for m in modules or []:
        m = m.strip()
        if m and m not in out:
            out.append(m)
    return out


def modules_of(person: ExternalPerson) -> list[str]:
    return [m for m in (person.allowed_modules or "").split(",") if m]


def _check_type(person_type: str) -> str:
    if person_type not in PERSON_TYPES:
        raise ValidationError(f"personType must be one of {', '.join(PERSON_TYPES)}")
    return person_type


def _check_status(status: str) -> str:
    if status not in STATUSES:
        raise ValidationError(f"status must be one of {', '.join(STATUSES)}")
    return status


def list_persons(db: Session, person_type: str = "", q: str = "") -> list[ExternalPerson]:
    query = db.query(ExternalPerson)
    if person_type:
        query = query.filter(ExternalPerson.person_type == person_type)
    if q:
        ql = f"%{q.lower()}%"
        query = query.filter(or_(
            func.lower(ExternalPerson.full_name).like(ql),
            func.lower(ExternalPerson.email).like(ql),
            func.lower(ExternalPerson.company_name).like(ql),
        ))
    return query.order_by(ExternalPerson.full_name.asc()).all()


def get_person(db: Session, person_id: str) -> ExternalPerson:
    p = db.get(ExternalPerson, person_id)
    if not p:
        raise NotFoundError("External person not found")
    return p


def find_by_document(db: Session, document: str) -> ExternalPerson:
    digits = normalize_document(document)
    if len(digits) != 11:
        raise ValidationError("CPF must have 11 digits")
    p = db.query(ExternalPerson).filter(ExternalPerson.document == digits).first()
    if not p:
        raise NotFoundError("No external person with this CPF")
    return p


def create_person(db: Session, body: ExternalPersonIn, actor_id: str) -> ExternalPerson:
    full_name = body.fullName.strip()
    email = body.email.strip().lower()
    if not full_name or not email:
        raise ValidationError("fullName and email are required")
    person_type = _check_type(body.personType)
    p = ExternalPerson(
        id=str(uuid.uuid4()),
        full_name=full_name,
        email=email,
        phone=body.phone.strip(),
        document=normalize_document(body.document),
        company_name=body.companyName.strip(),
        external_company=body.externalCompany.strip(),
        position=body.position.strip(),
        person_type=person_type,
        status=_check_status(body.status),
        has_system_access=body.hasSystemAccess,
        allowed_modules=",".join(effective_modules(person_type, body.allowedModules)),
        access_level=body.accessLevel or "basic",
        visit_count=0,
    )
    db.add(p)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise PolicyViolation("An external person with this email already exists")
    log_audit(db, actor_id, "external_person.create", "external_person", p.id, {"email": email, "personType": person_type})
    db.commit()
    db.refresh(p)
    return p


def update_person(db: Session, person_id: str, body: ExternalPersonPatch, actor_id: str) -> ExternalPerson:
    p = get_person(db, person_id)
    changes = body.model_dump(exclude_none=True)
    if "fullName" in changes:
        if not changes["fullName"].strip():
            raise ValidationError("fullName cannot be empty")
        p.full_name = changes["fullName"].strip()
    if "email" in changes:
        if not changes["email"].strip():
            raise ValidationError("email cannot be empty")
        p.email = changes["email"].strip().lower()
    if "personType" in changes:
        p.person_type = _check_type(changes["personType"])
    for key, attr in (("companyName", "company_name"), ("externalCompany", "external_company"),
                      ("phone", "phone"), ("position", "position"), ("accessLevel", "access_level")):
        if key in changes:
            setattr(p, attr, changes[key].strip())
    if "document" in changes:
        p.document = normalize_document(changes["document"])
    if "hasSystemAccess" in changes:
        p.has_system_access = changes["hasSystemAccess"]
    modules = changes.get("allowedModules", modules_of(p))
    p.allowed_modules = ",".join(effective_modules(p.person_type, modules))
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise PolicyViolation("An external person with this email already exists")
    log_audit(db, actor_id, "external_person.update", "external_person", p.id, changes)
    db.commit()
    db.refresh(p)
    return p


def set_status(db: Session, person_id: str, status: str, actor_id: str) -> ExternalPerson:
    p = get_person(db, person_id)
    old = p.status
    p.status = _check_status(status)
    log_audit(db, actor_id, "external_person.status", "external_person", p.id, {"from": old, "to": p.status})
    db.commit()
    db.refresh(p)
    logger.info("external person %s status %s -> %s", p.id, old, p.status)
    return p


def delete_person(db: Session, person_id: str, actor_id: str) -> None:
    p = get_person(db, person_id)
    log_audit(db, actor_id, "external_person.delete", "external_person", p.id, {"email": p.email})
    db.delete(p)
    db.commit()


def register_visit(db: Session, person_id: str, actor_id: str) -> ExternalPerson:
    """Count one site visit; only active persons may enter."""
    p = get_person(db, person_id)
    if p.status != "active":
        raise PolicyViolation(f"External person is {p.status}")
    p.visit_count = (p.visit_count or 0) + 1
    p.last_visit_at = datetime.now(timezone.utc)
    log_audit(db, actor_id, "external_person.visit", "external_person", p.id, {"visitCount": p.visit_count})
    db.commit()
    db.refresh(p)
    return p
