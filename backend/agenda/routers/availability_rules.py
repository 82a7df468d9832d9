# backend/agenda/routers/availability_rules.py
# Admin CRUD. PATCH = partial update, DELETE = hard delete (idempotent)

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.availability_rules import (
    AvailabilityRuleCreate,
    AvailabilityRuleUpdate,
    AvailabilityRuleRead,
)
from ..services import availability_rules as rules

router = APIRouter(prefix="/availability_rules", tags=["availability_rules"])


@router.get("/", response_model=list[AvailabilityRuleRead])
def list_availability_rules(db: Session = Depends(get_db)):
    return rules.list_rules(db)


@router.get("/{id}", response_model=AvailabilityRuleRead)
def get_availability_rule(id: int, db: Session = Depends(get_db)):
    return rules.get_rule(db, id)


@router.post("/", response_model=AvailabilityRuleRead, status_code=status.HTTP_201_CREATED)
def create_availability_rule(
    data: AvailabilityRuleCreate,
    db: Session = Depends(get_db),
):
    return rules.create_rule(db, data.model_dump())


@router.patch("/{id}", response_model=AvailabilityRuleRead)
def update_availability_rule(
    id: int,
    data: AvailabilityRuleUpdate,
    db: Session = Depends(get_db),
):
    return rules.update_rule(db, id, data.model_dump(exclude_unset=True))


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_availability_rule(id: int, db: Session = Depends(get_db)):
    rules.delete_rule(db, id)
