"""
=============================================================================
STORE.PY — Acceso a datos de check-ins
=============================================================================
Operaciones de persistencia que usa checkins.py.

Ninguna hace commit: quien llama controla la transacción. Así el insert,
la relectura de todos los check-ins y la actualización de la racha ocurren
en la MISMA sesión (se lee lo que se acaba de escribir).
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from errors import ConflictError
from models import CheckIn, Habit

logger = logging.getLogger("rachaclub.store")


def list_check_ins(db: Session, habit_id: int) -> list[CheckIn]:
    """Todos los check-ins de un hábito, del más reciente al más antiguo"""
    return db.query(CheckIn).filter(
        CheckIn.habit_id == habit_id
    ).order_by(CheckIn.date.desc()).all()


def insert_check_in(
    db: Session, habit_id: int, owner_id: int, day: date, note: Optional[str] = None
) -> CheckIn:
    """
    Inserta un check-in. Si ya hay uno ese día (restricción uq_checkin_habit_date)
    lanza ConflictError en vez de dejar datos corruptos.
    """
    check_in = CheckIn(habit_id=habit_id, user_id=owner_id, date=day, note=note)
    db.add(check_in)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        logger.info(f"Check-in duplicado rechazado (habit {habit_id}, {day})")
        raise ConflictError("Ya hay un check-in para esta fecha")
    return check_in


def delete_check_in(db: Session, check_in: CheckIn) -> None:
    db.delete(check_in)
    db.flush()


def update_habit_streak_fields(
    db: Session,
    habit: Habit,
    current_streak: int,
    longest_streak: int,
    last_check_in: Optional[date],
) -> None:
    """Guarda los campos derivados de la racha"""
    habit.current_streak = current_streak
    habit.longest_streak = longest_streak
    habit.last_check_in = last_check_in
    db.flush()
