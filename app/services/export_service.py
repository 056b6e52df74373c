import logging
from typing import Any, Callable, Dict, Optional

import httpx
from apscheduler.schedulers.base import BaseScheduler
from sqlalchemy.orm import Session

from app.config import config
from app.database import SessionLocal
from app.models.attendance import Attendance
from app.models.tracked_date import TrackedDate
from app.models.user import User
from app.scheduler import scheduler

logger = logging.getLogger(__name__)

EXPORT_JOB_ID = "dataset_export"


def build_snapshot(db: Session) -> Dict[str, Any]:
    """전체 데이터(날짜, 사용자, 신청 기록)를 내보내기 형식으로 만듭니다."""
    return {
        "dates": [d.to_dict() for d in db.query(TrackedDate).order_by(TrackedDate.date_string).all()],
        "users": [u.to_dict() for u in db.query(User).order_by(User.name).all()],
        "attendance": [
            a.to_dict()
            for a in db.query(Attendance).order_by(Attendance.date_id, Attendance.user_id).all()
        ],
    }


class ExportSink:
    """
    데이터가 바뀔 때마다 전체 데이터를 외부 스프레드시트 자동화 엔드포인트로 보냅니다.
    요청 처리와 분리된 스케줄러 작업으로 실행되며, 실패해도 로그만 남깁니다.
    """

    def __init__(
        self,
        url: Optional[str],
        scheduler: BaseScheduler,
        session_factory: Callable[[], Session] = SessionLocal,
        timeout_seconds: float = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.url = url
        self.scheduler = scheduler
        self.session_factory = session_factory
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def trigger(self) -> None:
        """내보내기 작업을 예약합니다. 이미 대기 중인 작업이 있으면 하나로 합쳐집니다."""
        if not self.enabled:
            logger.debug("export.url 이 설정되지 않아 내보내기를 건너뜁니다.")
            return

        self.scheduler.add_job(
            self.push,
            id=EXPORT_JOB_ID,
            replace_existing=True,
            misfire_grace_time=None,
            # 전송 중에 바뀐 데이터도 다시 보내도록 실행 중인 작업과 겹쳐 한 번 더 허용
            max_instances=2,
        )

    async def push(self) -> bool:
        """스냅샷을 만들어 전송합니다. 성공 여부를 반환하며 예외를 밖으로 던지지 않습니다."""
        try:
            db = self.session_factory()
            try:
                snapshot = build_snapshot(db)
            finally:
                db.close()

            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
                response = await client.post(self.url, json=snapshot)

            logger.info(
                f"데이터 내보내기 완료 (status: {response.status_code}, "
                f"dates: {len(snapshot['dates'])}, users: {len(snapshot['users'])}, "
                f"attendance: {len(snapshot['attendance'])})"
            )
            return True
        except Exception as e:
            logger.error(f"데이터 내보내기 중 오류 발생: {e}", exc_info=True)
            return False


_export_sink: Optional[ExportSink] = None


def get_export_sink() -> ExportSink:
    global _export_sink
    if _export_sink is None:
        _export_sink = ExportSink(
            url=config.export.get("url"),
            scheduler=scheduler,
            timeout_seconds=config.export.get("timeout_seconds", 10),
        )
    return _export_sink
