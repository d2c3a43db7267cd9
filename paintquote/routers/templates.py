from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel
from ..database import get_db
from ..errors import DuplicateNameError, TemplateNotFoundError, ValidationError
from ..schemas import TemplateOut
from ..template_store import TemplateStore

router = APIRouter(prefix="/orgs/{org_id}/templates", tags=["templates"])


# --- Schemas ---
class TemplateCreate(BaseModel):
    name: str
    description: Optional[str] = None
    is_default: bool = False
    config: dict = {}   # flat display config; omitted fields take defaults


class TemplateUpdate(BaseModel):
    name: str
    description: Optional[str] = None
    config: Optional[dict] = None   # None keeps the stored config


@router.get("/", response_model=List[TemplateOut])
def list_templates(org_id: str, db: Session = Depends(get_db)):
    return [TemplateOut.from_template(t) for t in TemplateStore(db, org_id).list()]


@router.post("/", response_model=TemplateOut)
def create_template(org_id: str, body: TemplateCreate, db: Session = Depends(get_db)):
    store = TemplateStore(db, org_id)
    try:
        template = store.create(body.name, body.config,
                                description=body.description, is_default=body.is_default)
    except DuplicateNameError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return TemplateOut.from_template(template)


@router.get("/{template_id}", response_model=TemplateOut)
def get_template(org_id: str, template_id: str, db: Session = Depends(get_db)):
    try:
        return TemplateOut.from_template(TemplateStore(db, org_id).get(template_id))
    except TemplateNotFoundError:
        raise HTTPException(status_code=404, detail="Template not found")


@router.put("/{template_id}", response_model=TemplateOut)
def update_template(org_id: str, template_id: str, body: TemplateUpdate,
                    db: Session = Depends(get_db)):
    store = TemplateStore(db, org_id)
    try:
        template = store.update(template_id, body.name, body.config, description=body.description)
    except TemplateNotFoundError:
        raise HTTPException(status_code=404, detail="Template not found")
    except DuplicateNameError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return TemplateOut.from_template(template)


@router.post("/{template_id}/default", response_model=TemplateOut)
def set_default_template(org_id: str, template_id: str, db: Session = Depends(get_db)):
    try:
        return TemplateOut.from_template(TemplateStore(db, org_id).set_default(template_id))
    except TemplateNotFoundError:
        raise HTTPException(status_code=404, detail="Template not found")
