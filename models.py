"""
=============================================================================
MODELS.PY — Modelos (Tablas) de la Base de Datos
=============================================================================
Cada clase = una tabla. Cada atributo = una columna.

RELACIONES:
  USER
  ├── habits[] ──→ check_ins[] ──→ cheers[]
  ├── check_ins[]
  ├── cheers_given[] / cheers_received[]
  └── friendships (como requester o como addressee)

Las rachas de Habit (current_streak, longest_streak, last_check_in) son
datos DERIVADOS: se recalculan desde los check-ins en cada cambio.
La fuente de verdad es la tabla check_ins.
"""

from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Boolean, Text, Date,
    DateTime, ForeignKey, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship
from database import Base
import enum


# =============================================================================
# ===================== ENUMS =================================================
# =============================================================================

class FriendshipStatus(str, enum.Enum):
    """Estado de una solicitud de amistad"""
    pending = "pending"      # Enviada, sin responder
    accepted = "accepted"    # Son amigos
    declined = "declined"    # Rechazada (se puede volver a pedir)


DEFAULT_CHEER_EMOJI = "👏"


# =============================================================================
# ===================== TABLA 1: USERS ========================================
# =============================================================================

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # ── Datos básicos ──
    email = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(30), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    profile_picture = Column(String(500), nullable=True)

    # ── Recuperación de contraseña ──
    reset_token = Column(String(64), nullable=True, index=True)
    reset_token_expiry = Column(DateTime, nullable=True)
    # El token caduca a la hora y se borra al usarlo

    # ── Timestamps ──
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # ── Relaciones ──
    habits = relationship("Habit", back_populates="user", cascade="all, delete-orphan")
    check_ins = relationship("CheckIn", back_populates="user", cascade="all, delete-orphan")
    cheers_given = relationship(
        "Cheer", back_populates="giver", foreign_keys="Cheer.giver_id",
        cascade="all, delete-orphan"
    )
    cheers_received = relationship(
        "Cheer", back_populates="receiver", foreign_keys="Cheer.receiver_id",
        cascade="all, delete-orphan"
    )


# =============================================================================
# ===================== TABLA 2: HABITS =======================================
# =============================================================================

class Habit(Base):
    __tablename__ = "habits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    frequency_goal = Column(Integer, default=1, nullable=False)
    # frequency_goal → veces por semana que el usuario quiere cumplirlo (1-7)

    # ── Rachas (derivadas de check_ins) ──
    current_streak = Column(Integer, default=0, nullable=False)
    longest_streak = Column(Integer, default=0, nullable=False)
    # longest_streak nunca baja: es el récord histórico
    last_check_in = Column(Date, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("frequency_goal BETWEEN 1 AND 7", name="ck_habit_frequency_goal"),
        CheckConstraint("current_streak >= 0", name="ck_habit_current_streak"),
        CheckConstraint("longest_streak >= current_streak", name="ck_habit_longest_streak"),
    )

    user = relationship("User", back_populates="habits")
    check_ins = relationship(
        "CheckIn", back_populates="habit", cascade="all, delete-orphan",
        order_by="CheckIn.date.desc()"
    )


# =============================================================================
# ===================== TABLA 3: CHECK_INS ====================================
# =============================================================================
# Un check-in = "hice este hábito este día". Un solo check-in por hábito y día.

class CheckIn(Base):
    __tablename__ = "check_ins"

    id = Column(Integer, primary_key=True, autoincrement=True)
    habit_id = Column(Integer, ForeignKey("habits.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    date = Column(Date, nullable=False)
    # date → el DÍA (UTC), no el instante. Es la unidad de identidad.
    note = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    # ── Restricción única: un check-in por hábito por día ──
    # Si dos peticiones compiten, la segunda falla aquí → ConflictError
    __table_args__ = (
        UniqueConstraint("habit_id", "date", name="uq_checkin_habit_date"),
    )

    habit = relationship("Habit", back_populates="check_ins")
    user = relationship("User", back_populates="check_ins")
    cheers = relationship(
        "Cheer", back_populates="check_in", cascade="all, delete-orphan",
        order_by="Cheer.created_at"
    )


# =============================================================================
# ===================== TABLA 4: CHEERS =======================================
# =============================================================================
# Un "ánimo" que un amigo deja en un check-in

class Cheer(Base):
    __tablename__ = "cheers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    check_in_id = Column(Integer, ForeignKey("check_ins.id"), nullable=False, index=True)
    giver_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    receiver_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    emoji = Column(String(10), default=DEFAULT_CHEER_EMOJI, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("check_in_id", "giver_id", name="uq_cheer_checkin_giver"),
    )

    check_in = relationship("CheckIn", back_populates="cheers")
    giver = relationship("User", back_populates="cheers_given", foreign_keys=[giver_id])
    receiver = relationship("User", back_populates="cheers_received", foreign_keys=[receiver_id])


# =============================================================================
# ===================== TABLA 5: FRIENDSHIPS ==================================
# =============================================================================
# Una fila por pareja de usuarios, sea cual sea quién pidió la amistad

class Friendship(Base):
    __tablename__ = "friendships"

    id = Column(Integer, primary_key=True, autoincrement=True)

    requester_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    addressee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    status = Column(String(20), default=FriendshipStatus.pending.value, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    # updated_at de una amistad aceptada = "amigos desde"

    __table_args__ = (
        UniqueConstraint("requester_id", "addressee_id", name="uq_friendship"),
    )

    requester = relationship("User", foreign_keys=[requester_id])
    addressee = relationship("User", foreign_keys=[addressee_id])
