import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler

logger = logging.getLogger(__name__)

# 스케줄러 초기화 (내보내기 같은 요청과 분리된 작업을 실행)
scheduler = AsyncIOScheduler()


def init_scheduler():
    """
    스케줄러를 시작합니다. 실행 중인 이벤트 루프 안에서 호출해야 합니다.

    Returns:
        AsyncIOScheduler: 시작된 스케줄러 객체
    """
    if not scheduler.running:
        scheduler.start()
        logger.info("스케줄러 시작")
    return scheduler


def shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("스케줄러 종료")
