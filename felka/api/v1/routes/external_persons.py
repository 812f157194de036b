from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from felka.db.session import get_db
from felka.api.deps import MANAGER_ROLES, require_roles
from felka.api.errors import service_errors
from felka.models.external_person import ExternalPerson
from felka.models.user import User
from felka.schemas.external_person import ExternalPersonIn, ExternalPersonOut, ExternalPersonPatch, ExternalPersonStatusIn
from felka.services import external_person_service as persons

router = APIRouter(prefix="/external-persons", tags=["external-persons"])


def _person_out(p: ExternalPerson) -> ExternalPersonOut:
    return ExternalPersonOut(
        id=p.id,
        fullName=p.full_name,
        email=p.email,
        personType=p.person_type,
        companyName=p.company_name or "",
        externalCompany=p.external_company or "",
        phone=p.phone or "",
        document=p.document or "",
        position=p.position or "",
        hasSystemAccess=p.has_system_access,
        allowedModules=persons.modules_of(p),
        accessLevel=p.access_level or "basic",
        status=p.status,
        visitCount=p.visit_count or 0,
        lastVisitAt=p.last_visit_at.isoformat() if p.last_visit_at else None,
        createdAt=p.created_at.isoformat(),
    )


@router.get("", response_model=list[ExternalPersonOut])
def list_persons(personType: str = "", q: str = "", db: Session = Depends(get_db),
                 user: User = Depends(require_roles(*MANAGER_ROLES))):
    return [_person_out(p) for p in persons.list_persons(db, person_type=personType, q=q)]


@router.get("/by-document/{document}", response_model=ExternalPersonOut)
def find_by_document(document: str, db: Session = Depends(get_db),
                     user: User = Depends(require_roles(*MANAGER_ROLES))):
    """Access-control lookup by CPF (punctuation ignored)."""
    with service_errors(db):
        p = persons.find_by_document(db, document)
    return _person_out(p)


@router.get("/{person_id}", response_model=ExternalPersonOut)
def get_person(person_id: str, db: Session = Depends(get_db),
               user: User = Depends(require_roles(*MANAGER_ROLES))):
    with service_errors(db):
        p = persons.get_person(db, person_id)
    return _person_out(p)


@router.post("", response_model=ExternalPersonOut, status_code=201)
def create_person(body: ExternalPersonIn, db: Session = Depends(get_db),
                  user: User = Depends(require_roles(*MANAGER_ROLES))):
    with service_errors(db):
        p = persons.create_person(db, body, user.id)
    return _person_out(p)


@router.patch("/{person_id}", response_model=ExternalPersonOut)
def update_person(person_id: str, body: ExternalPersonPatch, db: Session = Depends(get_db),
                  user: User = Depends(require_roles(*MANAGER_ROLES))):
    with service_errors(db):
        p = persons.update_person(db, person_id, body, user.id)
    return _person_out(p)


@router.patch("/{person_id}/status", response_model=ExternalPersonOut)
def set_status(person_id: str, body: ExternalPersonStatusIn, db: Session = Depends(get_db),
               user: User = Depends(require_roles(*MANAGER_ROLES))):
    with service_errors(db):
        p = persons.set_status(db, person_id, body.status, user.id)
    return _person_out(p)


@router.post("/{person_id}/visits", response_model=ExternalPersonOut)
def register_visit(person_id: str, db: Session = Depends(get_db),
                   user: User = Depends(require_roles(*MANAGER_ROLES))):
    with service_errors(db):
        p = persons.register_visit(db, person_id, user.id)
    return _person_out(p)


@router.delete("/{person_id}", status_code=204)
def delete_person(person_id: str, db: Session = Depends(get_db),
                  user: User = Depends(require_roles(*MANAGER_ROLES))):
    with service_errors(db):
        persons.delete_person(db, person_id, user.id)
    return Response(status_code=204)
