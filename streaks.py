"""
=============================================================================
STREAKS.PY — Cálculo de Rachas
=============================================================================
Una racha = días consecutivos con check-in, terminando HOY o AYER.

¿Por qué también ayer?
  Si el usuario aún no ha hecho el check-in de hoy, su racha no está rota
  todavía. Tiene hasta que acabe el día (margen de un día).

Política de zona horaria: TODO se calcula en UTC. Un mismo día es el mismo
día para el servidor, la BD y el cálculo, sin derivas.

calculate_streak es una función pura: no lee el reloj salvo a través del
parámetro `today`, así que se puede testear con cualquier fecha.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional, Union

ONE_DAY = timedelta(days=1)


def utc_today() -> date:
    """El día de hoy en UTC"""
    return datetime.now(timezone.utc).date()


def to_day(value: Union[date, datetime, str]) -> date:
    """
    Trunca una fecha al día (UTC).

      date(2024, 3, 1)                    → 2024-03-01
      datetime(2024, 3, 1, 23, 30)        → 2024-03-01  (naive = UTC)
      "2024-03-01T23:30:00-05:00"         → 2024-03-02  (convertido a UTC)
      "2024-03-01"                        → 2024-03-01

    Lanza ValueError si el valor no es una fecha válida.
    """
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Fecha vacía")
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f"Fecha no válida: {value!r}")

    # datetime es subclase de date → comprobarlo primero
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()

    if isinstance(value, date):
        return value

    raise ValueError(f"Fecha no válida: {value!r}")


def calculate_streak(dates: Iterable[date], today: Optional[date] = None) -> int:
    """
    Calcula la racha actual a partir de las fechas de check-in.

    Algoritmo:
      1. Ordenar de más reciente a más antigua
      2. Si el último check-in es anterior a AYER → racha rota (0)
      3. Contar hacia atrás mientras cada fecha sea el día anterior
      4. El primer hueco termina la racha

    Fechas repetidas se ignoran (no deberían existir por la restricción
    única, pero no deben contar doble).
    """
    if today is None:
        today = utc_today()

    ordered = sorted((to_day(d) for d in dates), reverse=True)
    if not ordered:
        return 0

    most_recent = ordered[0]
    if most_recent < today - ONE_DAY:
        return 0

    streak = 1
    cursor = most_recent
    for day in ordered[1:]:
        expected = cursor - ONE_DAY
        if day == expected:
            streak += 1
            cursor = day
        elif day < expected:
            break
        # day == cursor → duplicado, se salta

    return streak
