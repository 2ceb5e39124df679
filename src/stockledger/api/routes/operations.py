from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ... import catalog, operations
from ...config import Settings
from ...dependencies import get_app_settings, get_db
from ...schemas import (
    Message,
    OperationCreate,
    OperationDetail,
    OperationListItem,
    OperationRead,
    OperationTypeCreate,
    OperationTypeRead,
    OperationUpdate,
)

router = APIRouter(prefix="/operations", tags=["operations"])


@router.get("/types", response_model=list[OperationTypeRead])
def list_operation_types(db: Session = Depends(get_db)):
    return catalog.list_operation_types(db)


@router.post("/types", response_model=OperationTypeRead, status_code=status.HTTP_201_CREATED)
def create_operation_type(payload: OperationTypeCreate, db: Session = Depends(get_db)):
    return catalog.create_operation_type(db, payload)


@router.get("/types/{operation_type_id}", response_model=OperationTypeRead)
def get_operation_type(operation_type_id: int, db: Session = Depends(get_db)):
    return catalog.get_operation_type(db, operation_type_id)


@router.get("", response_model=list[OperationListItem])
def list_operations(db: Session = Depends(get_db)):
    return operations.list_operations(db)


@router.post("", response_model=OperationRead, status_code=status.HTTP_201_CREATED)
def create_operation(payload: OperationCreate, db: Session = Depends(get_db)):
    return operations.create_operation(db, payload)


@router.get("/{operation_id}", response_model=OperationDetail)
def get_operation(operation_id: int, db: Session = Depends(get_db)):
    return operations.get_operation(db, operation_id)


@router.patch("/{operation_id}", response_model=OperationDetail)
def update_operation(operation_id: int, payload: OperationUpdate, db: Session = Depends(get_db)):
    return operations.update_operation(db, operation_id, payload)


@router.delete("/{operation_id}", response_model=Message)
def delete_operation(operation_id: int, db: Session = Depends(get_db)) -> Message:
    operations.delete_operation(db, operation_id)
    return Message(message="Operation deleted")


@router.post("/{operation_id}/validate", response_model=OperationDetail)
def validate_operation(
    operation_id: int,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    return operations.validate_operation(
        db, operation_id, negative_stock_policy=settings.negative_stock_policy
    )


@router.post("/{operation_id}/confirm", response_model=OperationDetail)
def confirm_operation(operation_id: int, db: Session = Depends(get_db)):
    return operations.confirm_operation(db, operation_id)


@router.post("/{operation_id}/check-availability", response_model=OperationDetail)
def check_availability(operation_id: int, db: Session = Depends(get_db)):
    return operations.check_availability(db, operation_id)


@router.post("/{operation_id}/cancel", response_model=OperationDetail)
def cancel_operation(operation_id: int, db: Session = Depends(get_db)):
    return operations.cancel_operation(db, operation_id)
