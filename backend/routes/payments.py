# backend/routes/payments.py
from typing import List
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import get_current_user
from utils.audit import write_log, client_ip
from models.users import User
from schemas.payment import PaymentCreate, PaymentWithOrder, PaymentShow, PaymentMethodsOut
from services import payments as payment_service

router = APIRouter(tags=["Payments"])


# Methods a customer can pay with right now
@router.get("/payment-methods", response_model=PaymentMethodsOut)
def payment_methods(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"methods": payment_service.get_payment_settings(db).available_methods()}


@router.get("/payments", response_model=List[PaymentWithOrder])
def payment_history(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return payment_service.history(db, current_user.id)


# Pay a pending order; settlement is immediate
@router.post("/orders/{order_id}/payment", response_model=PaymentWithOrder, status_code=status.HTTP_201_CREATED)
def process_payment(
    order_id: int,
    payload: PaymentCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    payment = payment_service.process(
        db,
        current_user.id,
        order_id,
        payload.payment_method,
        transaction_id=payload.transaction_id,
        proof_image=payload.proof_image,
        notes=payload.notes,
    )
    payment_id, transaction_id = payment.id, payment.transaction_id
    write_log(db, user_id=current_user.id, action="PAYMENT", resource="payments", ip=client_ip(request),
              meta={"order_id": order_id, "payment_id": payment_id, "method": payload.payment_method.value,
                    "transaction_id": transaction_id})
    db.refresh(payment)
    return payment


# Order with its payment, or a null payment while unpaid
@router.get("/orders/{order_id}/payment", response_model=PaymentShow)
def show_payment(order_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    order, payment = payment_service.show(db, current_user.id, order_id)
    return {"order": order, "payment": payment}
