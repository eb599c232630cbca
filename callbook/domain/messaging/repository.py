"""Messaging repository - SMS log persistence"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...enums import SmsStatus
from ...models import SmsLog


class SmsLogRepository:
    @staticmethod
    def create_log(db: Session, **log_data) -> SmsLog:
        sms_log = SmsLog(**log_data)
        db.add(sms_log)
        db.commit()
        db.refresh(sms_log)
        return sms_log

    @staticmethod
    def update_status_by_sid(
        db: Session,
        message_sid: str,
        status: SmsStatus,
        error_code: Optional[str],
        now: datetime,
    ) -> int:
        """Bulk status update keyed on the gateway message SID; returns rows matched"""
        values = {"status": status.value, "error_code": error_code}
        if status == SmsStatus.DELIVERED:
            values["delivered_at"] = now
        count = (
            db.query(SmsLog)
            .filter(SmsLog.twilio_message_sid == message_sid)
            .update(values, synchronize_session=False)
        )
        db.commit()
        return count

    @staticmethod
    def list_logs(
        db: Session,
        tenant_id: int,
        status: Optional[str] = None,
        sms_type: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[SmsLog], int]:
        query = db.query(SmsLog).filter(SmsLog.tenant_id == tenant_id)
        if status:
            query = query.filter(SmsLog.status == status)
        if sms_type:
            query = query.filter(SmsLog.type == sms_type)
        total = query.count()
        logs = (
            query.order_by(SmsLog.created_at.desc(), SmsLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return logs, total
