# backend/agenda/routers/reservations.py
# No PATCH/DELETE: reservations are immutable here (cancellation is out of scope)

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.reservations import ReservationCreate, ReservationRead
from ..services.reservations import get_reservation, reserve_slot

router = APIRouter(prefix="/reservations", tags=["reservations"])


@router.post("/", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
def create_reservation(
    data: ReservationCreate,
    request: Request,
    db: Session = Depends(get_db),
):
    """Reserve a slot. 409 when someone else got it first."""
    return reserve_slot(
        db,
        data.slot_id,
        data.user_id,
        data.user_name,
        notifier=request.app.state.notifier,
        config=request.app.state.booking_config,
    )


@router.get("/{id}", response_model=ReservationRead)
def read_reservation(id: int, db: Session = Depends(get_db)):
    return get_reservation(db, id)
