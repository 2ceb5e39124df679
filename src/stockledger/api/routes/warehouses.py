from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ... import locations
from ...dependencies import get_db
from ...schemas import LocationCreate, LocationRead, WarehouseCreate, WarehouseRead

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("/warehouses", response_model=list[WarehouseRead])
def list_warehouses(db: Session = Depends(get_db)):
    return locations.list_warehouses(db)


@router.post("/warehouses", response_model=WarehouseRead, status_code=status.HTTP_201_CREATED)
def create_warehouse(payload: WarehouseCreate, db: Session = Depends(get_db)):
    return locations.create_warehouse(db, payload)


@router.get("/warehouses/{warehouse_id}", response_model=WarehouseRead)
def get_warehouse(warehouse_id: int, db: Session = Depends(get_db)):
    return locations.get_warehouse(db, warehouse_id)


@router.get("/locations", response_model=list[LocationRead])
def list_locations(db: Session = Depends(get_db)):
    return locations.list_locations(db)


@router.post("/locations", response_model=LocationRead, status_code=status.HTTP_201_CREATED)
def create_location(payload: LocationCreate, db: Session = Depends(get_db)):
    return locations.create_location(db, payload)
