"""
=============================================================================
SOCIAL.PY — Amigos, Ánimos y Rankings
=============================================================================
Gestiona:
  - Amistades (solicitar, aceptar, rechazar, eliminar)
  - Ánimos ("cheers") en los check-ins de los amigos
  - Leaderboard por suma de rachas activas

Reglas:
  - Solo se puede animar a AMIGOS, y nunca a uno mismo
  - Un ánimo por persona y check-in
  - Una solicitud rechazada se puede volver a enviar (por cualquiera de los dos)
"""

import logging
from typing import Optional

from sqlalchemy import or_, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from models import (
    User, Habit, CheckIn, Cheer, Friendship, FriendshipStatus, DEFAULT_CHEER_EMOJI
)

logger = logging.getLogger("rachaclub.social")

LEADERBOARD_SCOPES = ("friends", "global")


# =============================================================================
# ===================== AMISTADES =============================================
# =============================================================================

def involving(user_id: int):
    """Filtro: amistades donde participa el usuario (en cualquier lado)"""
    return or_(Friendship.requester_id == user_id, Friendship.addressee_id == user_id)


def find_friendship(db: Session, user_id: int, other_id: int) -> Optional[Friendship]:
    """La fila de amistad entre dos usuarios, sea cual sea su dirección"""
    return db.query(Friendship).filter(
        or_(
            and_(Friendship.requester_id == user_id, Friendship.addressee_id == other_id),
            and_(Friendship.requester_id == other_id, Friendship.addressee_id == user_id),
        )
    ).first()


def are_friends(db: Session, user_id: int, other_id: int) -> bool:
    friendship = find_friendship(db, user_id, other_id)
    return friendship is not None and friendship.status == FriendshipStatus.accepted.value


def friend_ids(db: Session, user_id: int) -> list[int]:
    """IDs de todos los amigos (amistades aceptadas) del usuario"""
    friendships = db.query(Friendship).filter(
        Friendship.status == FriendshipStatus.accepted.value,
        involving(user_id),
    ).all()
    return [
        f.addressee_id if f.requester_id == user_id else f.requester_id
        for f in friendships
    ]


def other_party(friendship: Friendship, user_id: int) -> User:
    """El otro usuario de la amistad"""
    return friendship.addressee if friendship.requester_id == user_id else friendship.requester


def send_friend_request(db: Session, user: User, target_id: int) -> tuple[Friendship, bool]:
    """
    Envía una solicitud de amistad.

    Devuelve (amistad, creada). `creada` es False cuando se reabre una
    solicitud que el otro había rechazado.
    """
    if target_id == user.id:
        raise InvalidInputError("No puede enviarse una solicitud a sí mismo")

    target = db.query(User).filter(User.id == target_id).first()
    if not target:
        raise NotFoundError("Usuario no encontrado")

    existing = find_friendship(db, user.id, target_id)
    if existing:
        if existing.status == FriendshipStatus.accepted.value:
            raise InvalidInputError("Ya son amigos")
        if existing.status == FriendshipStatus.pending.value:
            raise InvalidInputError("Ya hay una solicitud pendiente")

        # Rechazada → se reabre como solicitud nueva de quien la envía ahora
        existing.status = FriendshipStatus.pending.value
        existing.requester_id = user.id
        existing.addressee_id = target_id
        db.commit()
        db.refresh(existing)
        logger.info(f"🤝 Solicitud reabierta: {user.username} → {target.username}")
        return existing, False

    friendship = Friendship(requester_id=user.id, addressee_id=target_id)
    db.add(friendship)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Ya hay una solicitud pendiente")
    db.refresh(friendship)

    logger.info(f"🤝 Solicitud de amistad: {user.username} → {target.username}")
    return friendship, True


def respond_friend_request(db: Session, user: User, friendship_id: int, accept: bool) -> Friendship:
    """Acepta o rechaza una solicitud. Solo puede hacerlo su destinatario."""
    friendship = db.query(Friendship).filter(
        Friendship.id == friendship_id,
        Friendship.addressee_id == user.id,
        Friendship.status == FriendshipStatus.pending.value,
    ).first()
    if not friendship:
        raise NotFoundError("Solicitud de amistad no encontrada")

    friendship.status = (
        FriendshipStatus.accepted.value if accept else FriendshipStatus.declined.value
    )
    db.commit()
    db.refresh(friendship)

    logger.info(f"🤝 Solicitud {friendship_id} {'aceptada' if accept else 'rechazada'} por {user.username}")
    return friendship


def remove_friend(db: Session, user: User, friendship_id: int) -> None:
    friendship = db.query(Friendship).filter(
        Friendship.id == friendship_id,
        Friendship.status == FriendshipStatus.accepted.value,
        involving(user.id),
    ).first()
    if not friendship:
        raise NotFoundError("Amistad no encontrada")

    db.delete(friendship)
    db.commit()
    logger.info(f"👋 Amistad {friendship_id} eliminada por {user.username}")


# =============================================================================
# ===================== ÁNIMOS (CHEERS) =======================================
# =============================================================================

def add_cheer(db: Session, user: User, check_in_id: int, emoji: Optional[str] = None) -> Cheer:
    """Deja un ánimo en el check-in de un amigo"""
    check_in = db.query(CheckIn).filter(CheckIn.id == check_in_id).first()
    if not check_in:
        raise NotFoundError("Check-in no encontrado")

    if check_in.user_id == user.id:
        raise InvalidInputError("No puede animar su propio check-in")

    if not are_friends(db, user.id, check_in.user_id):
        raise ForbiddenError("Solo puede animar check-ins de sus amigos")

    existing = db.query(Cheer).filter(
        Cheer.check_in_id == check_in_id, Cheer.giver_id == user.id
    ).first()
    if existing:
        raise ConflictError("Ya ha animado este check-in")

    cheer = Cheer(
        check_in_id=check_in_id,
        giver_id=user.id,
        receiver_id=check_in.user_id,
        emoji=emoji or DEFAULT_CHEER_EMOJI,
    )
    db.add(cheer)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Ya ha animado este check-in")
    db.refresh(cheer)

    logger.info(f"🎉 {user.username} animó el check-in {check_in_id}")
    return cheer


def remove_cheer(db: Session, user: User, check_in_id: int) -> None:
    cheer = db.query(Cheer).filter(
        Cheer.check_in_id == check_in_id, Cheer.giver_id == user.id
    ).first()
    if not cheer:
        raise NotFoundError("Ánimo no encontrado")

    db.delete(cheer)
    db.commit()


# =============================================================================
# ===================== LEADERBOARD ===========================================
# =============================================================================

def build_leaderboard(db: Session, user: User, scope: str = "friends") -> list[dict]:
    """
    Ranking de usuarios por suma de rachas actuales de sus hábitos activos.

    scope:
      - "friends" → el usuario y sus amigos
      - "global"  → todos los usuarios

    Empates: se ordena por nombre de usuario para que el ranking sea estable.
    """
    if scope not in LEADERBOARD_SCOPES:
        raise InvalidInputError(f"scope debe ser uno de: {', '.join(LEADERBOARD_SCOPES)}")

    query = db.query(User)
    if scope == "friends":
        query = query.filter(User.id.in_([user.id] + friend_ids(db, user.id)))
    users = query.all()

    active_habits = db.query(Habit).filter(
        Habit.is_active == True,  # noqa: E712
        Habit.user_id.in_([u.id for u in users]),
    ).all()

    habits_by_user = {}
    for habit in active_habits:
        habits_by_user.setdefault(habit.user_id, []).append(habit)

    entries = []
    for u in users:
        habits = habits_by_user.get(u.id, [])
        entries.append({
            "id": u.id,
            "username": u.username,
            "profile_picture": u.profile_picture,
            "total_active_streaks": sum(h.current_streak for h in habits),
            "longest_streak": max((h.longest_streak for h in habits), default=0),
            "active_habits": len(habits),
            "is_current_user": u.id == user.id,
        })

    entries.sort(key=lambda e: (-e["total_active_streaks"], e["username"].lower()))
    for position, entry in enumerate(entries, start=1):
        entry["rank"] = position

    return entries
