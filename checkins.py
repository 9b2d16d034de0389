"""
=============================================================================
CHECKINS.PY — Ciclo de vida de los check-ins
=============================================================================
Por cada (hábito, día) solo hay dos estados:

    SIN CHECK-IN ──record_check_in──→ CON CHECK-IN
    CON CHECK-IN ──remove_check_in──→ SIN CHECK-IN

Tras cada cambio la racha se recalcula DESDE CERO con todos los check-ins
del hábito (nunca sumando o restando 1). Un check-in tardío de un día
anterior también deja la racha correcta.

Todo ocurre en una sola transacción: insertar/borrar, releer, recalcular,
guardar la racha y commit. Si algo falla, rollback y no queda nada a medias.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

from sqlalchemy.orm import Session

import store
from errors import ConflictError, InvalidInputError, NotFoundError
from models import CheckIn, Habit
from streaks import calculate_streak, to_day, utc_today

logger = logging.getLogger("rachaclub.checkins")


@dataclass
class CheckInResult:
    """Lo que devuelve record_check_in"""
    check_in: CheckIn
    current_streak: int
    longest_streak: int


def _get_owned_habit(db: Session, habit_id: int, owner_id: int) -> Habit:
    habit = db.query(Habit).filter(
        Habit.id == habit_id, Habit.user_id == owner_id
    ).first()
    if not habit:
        raise NotFoundError("Hábito no encontrado")
    return habit


def record_check_in(
    db: Session,
    habit_id: int,
    owner_id: int,
    day: Union[date, datetime, str, None] = None,
    note: Optional[str] = None,
    today: Optional[date] = None,
) -> CheckInResult:
    """
    Marca un hábito como hecho en un día (por defecto hoy, UTC).

    Errores:
      - NotFoundError      → el hábito no existe o no es del usuario
      - InvalidInputError  → fecha mal formada o en el futuro
      - ConflictError      → ya hay check-in ese día
    """
    if today is None:
        today = utc_today()

    habit = _get_owned_habit(db, habit_id, owner_id)

    if day is None:
        check_in_day = today
    else:
        try:
            check_in_day = to_day(day)
        except ValueError as e:
            raise InvalidInputError(str(e))

    if check_in_day > today:
        raise InvalidInputError("No se puede hacer check-in en fechas futuras")

    existing = db.query(CheckIn).filter(
        CheckIn.habit_id == habit.id, CheckIn.date == check_in_day
    ).first()
    if existing:
        raise ConflictError("Ya hay un check-in para esta fecha")

    try:
        check_in = store.insert_check_in(db, habit.id, owner_id, check_in_day, note)

        all_check_ins = store.list_check_ins(db, habit.id)
        current_streak = calculate_streak((c.date for c in all_check_ins), today)
        longest_streak = max(habit.longest_streak or 0, current_streak)

        store.update_habit_streak_fields(
            db, habit, current_streak, longest_streak, check_in_day
        )
        db.commit()
    except ConflictError:
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(check_in)
    logger.info(
        f"✅ Check-in: habit {habit.id} ({check_in_day}) → racha {current_streak}, "
        f"récord {longest_streak}"
    )
    return CheckInResult(
        check_in=check_in,
        current_streak=current_streak,
        longest_streak=longest_streak,
    )


def remove_check_in(
    db: Session,
    habit_id: int,
    check_in_id: int,
    owner_id: int,
    today: Optional[date] = None,
) -> int:
    """
    Deshace un check-in y devuelve la racha actual recalculada.

    longest_streak NO se recalcula a la baja: el récord sobrevive a un
    "deshacer" accidental.
    """
    if today is None:
        today = utc_today()

    check_in = db.query(CheckIn).filter(
        CheckIn.id == check_in_id,
        CheckIn.habit_id == habit_id,
        CheckIn.user_id == owner_id,
    ).first()
    if not check_in:
        raise NotFoundError("Check-in no encontrado")

    habit = check_in.habit

    try:
        store.delete_check_in(db, check_in)

        remaining = store.list_check_ins(db, habit.id)
        current_streak = calculate_streak((c.date for c in remaining), today)
        last_check_in = remaining[0].date if remaining else None

        store.update_habit_streak_fields(
            db, habit, current_streak,
            max(habit.longest_streak or 0, current_streak),
            last_check_in,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"↩️ Check-in {check_in_id} deshecho: habit {habit.id} → racha {current_streak}")
    return current_streak


def refresh_habit_streak(db: Session, habit: Habit, today: Optional[date] = None) -> bool:
    """
    Recalcula la racha guardada de un hábito sin que haya cambiado nada.

    Hace falta porque la racha "caduca" sola: si ayer no hubo check-in,
    la racha de hoy ya es 0 aunque nadie haya tocado el hábito.
    last_check_in no se toca. Devuelve True si el valor cambió. No hace commit.
    """
    if today is None:
        today = utc_today()

    check_ins = store.list_check_ins(db, habit.id)
    current_streak = calculate_streak((c.date for c in check_ins), today)
    if current_streak == habit.current_streak:
        return False

    store.update_habit_streak_fields(
        db, habit, current_streak,
        max(habit.longest_streak or 0, current_streak),
        habit.last_check_in,
    )
    return True
