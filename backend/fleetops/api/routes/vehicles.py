from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fleetops.api.deps import get_current_user, require_admin
from fleetops.api.envelope import run_service
from fleetops.core.errors import ErrorCode, ServiceError
from fleetops.db.session import get_db, transaction
from fleetops.models.user import User
from fleetops.models.vehicle import Vehicle
from fleetops.schemas.vehicles import VehicleCreateIn, VehicleEnvelope, VehicleOut


router = APIRouter(prefix="/vehicles")


def _create_vehicle(db: Session, payload: VehicleCreateIn) -> Vehicle:
    plate = payload.license_plate.strip().upper()
    if db.query(Vehicle.id).filter(Vehicle.license_plate == plate).first() is not None:
        raise ServiceError.single("License plate already registered", code=ErrorCode.TAKEN, field="license_plate")

    with transaction(db):
        vehicle = Vehicle(
            license_plate=plate,
            make=payload.make,
            model=payload.model,
            year_of_manufacture=payload.year_of_manufacture,
            latest_odometer=payload.latest_odometer,
            latest_range=payload.latest_range,
        )
        db.add(vehicle)
        db.flush()
    return vehicle


@router.post("", response_model=VehicleEnvelope)
def create_vehicle(payload: VehicleCreateIn, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return run_service(db, "vehicle", VehicleOut, _create_vehicle, db, payload)


@router.get("", response_model=list[VehicleOut])
def list_vehicles(current: User = Depends(get_current_user), db: Session = Depends(get_db)):
    vehicles = db.query(Vehicle).order_by(Vehicle.make.asc(), Vehicle.model.asc(), Vehicle.id.asc()).all()
    return [VehicleOut.model_validate(v) for v in vehicles]
