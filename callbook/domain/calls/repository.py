"""Calls repository - Database operations for inbound calls"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from ...enums import IvrResponse
from ...models import Call


class CallRepository:
    @staticmethod
    def create_call(db: Session, **call_data) -> Call:
        call = Call(**call_data)
        db.add(call)
        db.commit()
        db.refresh(call)
        return call

    @staticmethod
    def get_call(db: Session, call_id: int) -> Optional[Call]:
        return db.query(Call).options(joinedload(Call.tenant)).filter(Call.id == call_id).first()

    @staticmethod
    def get_call_by_sid(db: Session, call_sid: str) -> Optional[Call]:
        return (
            db.query(Call)
            .options(joinedload(Call.tenant))
            .filter(Call.twilio_call_sid == call_sid)
            .order_by(Call.id.desc())
            .first()
        )

    @staticmethod
    def get_tenant_call(db: Session, tenant_id: int, call_id: int) -> Optional[Call]:
        return db.query(Call).filter(Call.id == call_id, Call.tenant_id == tenant_id).first()

    @staticmethod
    def record_ivr_response(db: Session, call_id: int, ivr_response: str, digit: str) -> bool:
        """
        Set the menu outcome only if none is recorded yet.

        Returns False when another delivery of the same gather webhook got there
        first.
        """
        updated = (
            db.query(Call)
            .filter(Call.id == call_id, Call.ivr_response.is_(None))
            .update({"ivr_response": ivr_response, "ivr_digit": digit}, synchronize_session=False)
        )
        db.commit()
        return updated > 0

    @staticmethod
    def list_calls(
        db: Session,
        tenant_id: int,
        status: Optional[str] = None,
        ivr_response: Optional[str] = None,
        callback_handled: Optional[bool] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Call], int]:
        query = db.query(Call).filter(Call.tenant_id == tenant_id)
        if status:
            query = query.filter(Call.status == status)
        if ivr_response == IvrResponse.NO_RESPONSE.value:
            # Stored as NULL: the caller never pressed a key
            query = query.filter(Call.ivr_response.is_(None))
        elif ivr_response:
            query = query.filter(Call.ivr_response == ivr_response)
        if callback_handled is not None:
            query = query.filter(Call.callback_handled.is_(callback_handled))

        total = query.count()
        calls = (
            query.options(selectinload(Call.sms_logs))
            .order_by(Call.created_at.desc(), Call.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return calls, total
