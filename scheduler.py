"""
=============================================================================
SCHEDULER.PY — Refresco nocturno de rachas
=============================================================================
Las rachas guardadas en cada hábito solo se recalculan cuando hay un
check-in o un "deshacer". Pero una racha también se rompe SOLA: si ayer
no hubo check-in, hoy ya vale 0 aunque nadie haya tocado el hábito.

Para que el leaderboard y los perfiles no enseñen rachas caducadas,
cada noche a las 00:05 UTC se recalculan todas las rachas activas.

Usa APScheduler con CronTrigger, en el mismo event loop que FastAPI.
"""

import logging
from datetime import date
from typing import Optional

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from checkins import refresh_habit_streak
from database import SessionLocal
from models import Habit
from streaks import utc_today

logger = logging.getLogger("rachaclub.scheduler")

scheduler: AsyncIOScheduler = None


# =============================================================================
# ===================== TAREAS ================================================
# =============================================================================

def refresh_all_streaks(db: Session, today: Optional[date] = None) -> int:
    """
    Recalcula la racha de todos los hábitos que tienen una racha > 0.
    Devuelve cuántos hábitos cambiaron.

    Un hábito que falla no impide refrescar los demás.
    """
    if today is None:
        today = utc_today()

    habits = db.query(Habit).filter(Habit.current_streak > 0).all()

    changed = 0
    for habit in habits:
        try:
            if refresh_habit_streak(db, habit, today):
                db.commit()
                changed += 1
        except Exception as e:
            db.rollback()
            logger.error(f"Error refrescando la racha del hábito {habit.id}: {e}")

    logger.info(f"🔄 Rachas refrescadas: {changed} de {len(habits)} hábitos cambiaron")
    return changed


async def refresh_streaks():
    """Tarea programada: abre su propia sesión de BD"""
    db = SessionLocal()
    try:
        refresh_all_streaks(db)
    finally:
        db.close()


# =============================================================================
# ===================== INICIALIZAR SCHEDULER =================================
# =============================================================================

def create_scheduler() -> AsyncIOScheduler:
    """Crea el scheduler con el refresco de rachas a las 00:05 UTC"""
    global scheduler

    scheduler = AsyncIOScheduler(timezone=pytz.utc)

    # 00:05 para dar margen al cambio de día
    scheduler.add_job(
        refresh_streaks,
        CronTrigger(hour=0, minute=5, timezone=pytz.utc),
        id="refresh_streaks",
        name="Refrescar rachas",
        replace_existing=True
    )

    logger.info("⏰ Scheduler configurado: refresco de rachas a las 00:05 UTC")
    return scheduler


def start_scheduler():
    global scheduler
    if scheduler and not scheduler.running:
        scheduler.start()
        logger.info("⏰ Scheduler arrancado")


def stop_scheduler():
    global scheduler
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("⏰ Scheduler parado")
