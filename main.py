"""
=============================================================================
MAIN.PY — La API de RachaClub
=============================================================================
Este archivo define TODOS los endpoints de la API REST.

Organización por secciones:
  1. AUTH     → Registro, login, recuperar contraseña
  2. USERS    → Perfil propio, búsqueda, perfil de otros
  3. HABITS   → CRUD de hábitos
  4. CHECK-INS→ Marcar / deshacer un día, historial
  5. FRIENDS  → Solicitudes y lista de amigos
  6. SOCIAL   → Feed, ánimos, leaderboard

La lógica con reglas de negocio vive fuera (checkins.py, social.py).
Aquí solo se traduce HTTP ↔ servicios.
"""

import os
import math
import logging
import traceback
from datetime import datetime, timezone
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends, HTTPException, status, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from database import get_db, init_db
from models import User, Habit, CheckIn, Cheer, Friendship, FriendshipStatus
from schemas import (
    Pagination, UserSignup, UserLogin, ForgotPasswordRequest, ResetPasswordRequest,
    UserPublic, UserResponse, AuthResponse, UserMeResponse, UserUpdate,
    CheerCreate, CheerResponse, CheckInCreate, CheckInResponse, CheckInWithCheers,
    CheckInCreatedResponse, CheckInRemovedResponse, CheckInHistoryResponse,
    HabitCreate, HabitUpdate, HabitResponse, HabitListItem, HabitListResponse,
    HabitDetailResponse, FriendResponse, FriendListResponse, FriendRequestItem,
    FriendRequestsResponse, FriendshipResponse, FriendRequestSentResponse,
    FriendAcceptedResponse, ProfileCheckIn, ProfileHabit, HabitStats,
    UserProfileResponse, FeedHabit, FeedActivity, FeedResponse,
    LeaderboardEntry, LeaderboardResponse, ReceivedCheer, ReceivedCheersResponse,
)
from auth import (
    hash_password, verify_password, create_access_token,
    generate_reset_token, get_current_user
)
from errors import RachaClubError
from checkins import record_check_in, remove_check_in
from streaks import utc_today
import social

# ─────────────────────────────────────────────────────────────────────────────
# LOGGING
# ─────────────────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s"
)
logger = logging.getLogger("rachaclub.api")

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
STREAK_REFRESH_ENABLED = os.getenv("STREAK_REFRESH_ENABLED", "true").lower() == "true"

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGIN", "http://localhost:5173,http://localhost:3000").split(",")
    if origin.strip()
]


# ─────────────────────────────────────────────────────────────────────────────
# LIFESPAN (Arranque y apagado)
# ─────────────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Arranque:
      1. Crear tablas si no existen
      2. Arrancar el scheduler que refresca las rachas cada noche
    Apagado:
      - Parar el scheduler
    """
    logger.info("🚀 Arrancando RachaClub...")

    init_db()
    logger.info("✅ Base de datos inicializada")

    if STREAK_REFRESH_ENABLED:
        from scheduler import create_scheduler, start_scheduler
        create_scheduler()
        start_scheduler()
    else:
        logger.warning("⚠️ Refresco nocturno de rachas desactivado")

    yield

    logger.info("🛑 Apagando RachaClub...")
    if STREAK_REFRESH_ENABLED:
        from scheduler import stop_scheduler
        stop_scheduler()


# ─────────────────────────────────────────────────────────────────────────────
# APLICACIÓN FASTAPI
# ─────────────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="RachaClub API",
    description="Hábitos, rachas y amigos que te animan",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# ─────────────────────────────────────────────────────────────────────────────
# MANEJO DE ERRORES
# ─────────────────────────────────────────────────────────────────────────────

@app.exception_handler(RachaClubError)
async def business_error_handler(request: Request, exc: RachaClubError):
    """Errores de negocio (404, 409, 400, 403) → JSON con su status"""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Captura errores no manejados, los registra con traza y devuelve 500"""
    logger.error(f"❌ Error no manejado en {request.url}: {exc}\n{traceback.format_exc()}")
    content = {"detail": "Error interno del servidor", "type": type(exc).__name__}
    if ENVIRONMENT != "production":
        content["detail"] = str(exc)
    return JSONResponse(status_code=500, content=content)


# ─────────────────────────────────────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────────────────────────────────────

def _pagination(page: int, limit: int, total: int) -> Pagination:
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit) if total else 0,
    )


def _paginate(query, page: int, limit: int):
    """Aplica offset/limit a una query y devuelve (items, Pagination)"""
    total = query.count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, _pagination(page, limit, total)


def _get_habit_or_404(db: Session, habit_id: int, user: User) -> Habit:
    habit = db.query(Habit).filter(
        Habit.id == habit_id, Habit.user_id == user.id
    ).first()
    if not habit:
        raise HTTPException(status_code=404, detail="Hábito no encontrado")
    return habit


# =============================================================================
# ===================== HEALTH CHECK ==========================================
# =============================================================================

@app.get("/health", tags=["Health"])
def health_check():
    """Verifica que la API está viva"""
    return {"status": "ok", "timestamp": datetime.utcnow().isoformat()}


# =============================================================================
# ===================== SECCIÓN 1: AUTH =======================================
# =============================================================================

@app.post("/api/auth/signup", response_model=AuthResponse, status_code=201, tags=["Auth"])
def signup(data: UserSignup, db: Session = Depends(get_db)):
    """
    Registra un usuario nuevo.
    Email y nombre de usuario deben ser únicos.
    """
    email = data.email.lower()
    existing = db.query(User).filter(
        or_(User.email == email, User.username == data.username)
    ).first()
    if existing:
        field = "email" if existing.email == email else "nombre de usuario"
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Ya existe un usuario con este {field}"
        )

    user = User(
        email=email,
        username=data.username,
        password_hash=hash_password(data.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"👤 Nuevo usuario registrado: {user.username} ({user.email})")

    return AuthResponse(
        message="Usuario creado correctamente",
        user=UserResponse.model_validate(user),
        token=create_access_token(user.id),
    )


@app.post("/api/auth/login", response_model=AuthResponse, tags=["Auth"])
def login(data: UserLogin, db: Session = Depends(get_db)):
    """Inicia sesión con email y contraseña"""
    user = db.query(User).filter(User.email == data.email.lower()).first()

    if not user or not verify_password(data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Credenciales incorrectas"
        )

    return AuthResponse(
        message="Login correcto",
        user=UserResponse.model_validate(user),
        token=create_access_token(user.id),
    )


@app.post("/api/auth/forgot-password", tags=["Auth"])
def forgot_password(data: ForgotPasswordRequest, db: Session = Depends(get_db)):
    """
    Genera un token de recuperación (válido 1 hora).

    La respuesta es SIEMPRE la misma, exista o no el email, para no revelar
    qué cuentas existen. Fuera de producción el token se devuelve también
    en la respuesta para poder probar el flujo sin email.
    """
    message = "Si existe una cuenta con este email, recibirá un enlace de recuperación"

    user = db.query(User).filter(User.email == data.email.lower()).first()
    if not user:
        return {"message": message}

    token, expiry = generate_reset_token()
    user.reset_token = token
    user.reset_token_expiry = expiry
    db.commit()

    logger.info(f"🔑 Recuperación de contraseña para {user.email} (caduca {expiry.isoformat()})")

    response = {"message": message}
    if ENVIRONMENT != "production":
        response["reset_token"] = token
    return response


@app.post("/api/auth/reset-password", tags=["Auth"])
def reset_password(data: ResetPasswordRequest, db: Session = Depends(get_db)):
    """Cambia la contraseña usando un token de recuperación válido"""
    user = db.query(User).filter(
        User.reset_token == data.token,
        User.reset_token_expiry > datetime.utcnow()
    ).first()
    if not user:
        raise HTTPException(status_code=400, detail="Token inválido o caducado")

    user.password_hash = hash_password(data.password)
    user.reset_token = None
    user.reset_token_expiry = None
    db.commit()

    logger.info(f"🔑 Contraseña cambiada: {user.email}")
    return {"message": "Contraseña cambiada. Ya puede iniciar sesión."}


# =============================================================================
# ===================== SECCIÓN 2: USERS ======================================
# =============================================================================

@app.get("/api/users/me", response_model=UserMeResponse, tags=["Users"])
def get_me(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Perfil del usuario autenticado con sus totales"""
    habit_count = db.query(Habit).filter(Habit.user_id == user.id).count()
    check_in_count = db.query(CheckIn).filter(CheckIn.user_id == user.id).count()
    total_active_streaks = db.query(func.coalesce(func.sum(Habit.current_streak), 0)).filter(
        Habit.user_id == user.id, Habit.is_active == True  # noqa: E712
    ).scalar()

    return UserMeResponse(
        **UserResponse.model_validate(user).model_dump(),
        habit_count=habit_count,
        check_in_count=check_in_count,
        total_active_streaks=total_active_streaks,
    )


@app.patch("/api/users/me", response_model=UserResponse, tags=["Users"])
def update_me(data: UserUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Actualiza nombre de usuario y/o foto de perfil"""
    if data.username:
        taken = db.query(User).filter(
            User.username == data.username, User.id != user.id
        ).first()
        if taken:
            raise HTTPException(status_code=409, detail="Nombre de usuario ya en uso")
        user.username = data.username

    # profile_picture puede ponerse a null explícitamente
    if "profile_picture" in data.model_fields_set:
        user.profile_picture = str(data.profile_picture) if data.profile_picture else None

    db.commit()
    db.refresh(user)
    return user


@app.get("/api/users/search", response_model=list[UserPublic], tags=["Users"])
def search_users(
    q: str = Query(min_length=2, description="Mínimo 2 caracteres"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Busca otros usuarios por nombre de usuario o email (máx. 20)"""
    pattern = f"%{q.lower()}%"
    return db.query(User).filter(
        User.id != user.id,
        or_(func.lower(User.username).like(pattern), func.lower(User.email).like(pattern))
    ).order_by(User.username).limit(20).all()


@app.get("/api/users/{user_id}", response_model=UserProfileResponse, tags=["Users"])
def get_user_profile(user_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Perfil público de otro usuario.
    Si son amigos, incluye sus hábitos activos con los últimos 90 check-ins.
    """
    target = db.query(User).filter(User.id == user_id).first()
    if not target:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")

    active_habit_count = db.query(Habit).filter(
        Habit.user_id == target.id, Habit.is_active == True  # noqa: E712
    ).count()

    friendship = social.find_friendship(db, user.id, target.id)
    is_friend = friendship is not None and friendship.status == FriendshipStatus.accepted.value

    habits = []
    habit_stats = None
    if is_friend:
        active_habits = db.query(Habit).filter(
            Habit.user_id == target.id, Habit.is_active == True  # noqa: E712
        ).order_by(Habit.created_at.desc()).all()

        for habit in active_habits:
            habits.append(ProfileHabit(
                id=habit.id,
                name=habit.name,
                description=habit.description,
                frequency_goal=habit.frequency_goal,
                current_streak=habit.current_streak,
                longest_streak=habit.longest_streak,
                check_ins=[
                    ProfileCheckIn(
                        id=c.id,
                        date=c.date,
                        note=c.note,
                        cheer_count=len(c.cheers),
                        has_cheered=any(ch.giver_id == user.id for ch in c.cheers),
                    )
                    for c in habit.check_ins[:90]
                ],
            ))

        habit_stats = HabitStats(
            total_active_habits=len(active_habits),
            total_active_streaks=sum(h.current_streak for h in active_habits),
            longest_streak=max((h.longest_streak for h in active_habits), default=0),
        )

    return UserProfileResponse(
        id=target.id,
        username=target.username,
        profile_picture=target.profile_picture,
        created_at=target.created_at,
        active_habit_count=active_habit_count,
        friendship_status=friendship.status if friendship else None,
        friendship_id=friendship.id if friendship else None,
        friends_since=friendship.updated_at if is_friend else None,
        habits=habits,
        habit_stats=habit_stats,
    )


# =============================================================================
# ===================== SECCIÓN 3: HABITS =====================================
# =============================================================================

@app.get("/api/habits", response_model=HabitListResponse, tags=["Habits"])
def list_habits(
    active: bool = False,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Lista los hábitos del usuario (más nuevos primero).
    Cada uno trae sus últimos 7 check-ins y si ya está hecho hoy.
    """
    query = db.query(Habit).filter(Habit.user_id == user.id)
    if active:
        query = query.filter(Habit.is_active == True)  # noqa: E712

    habits, pagination = _paginate(
        query.order_by(Habit.created_at.desc(), Habit.id.desc()), page, limit
    )

    today = utc_today()
    items = []
    for habit in habits:
        recent = habit.check_ins[:7]
        today_check_in = next((c for c in recent if c.date == today), None)
        items.append(HabitListItem(
            **HabitResponse.model_validate(habit).model_dump(),
            check_ins=[CheckInResponse.model_validate(c) for c in recent],
            completed_today=today_check_in is not None,
            today_check_in=CheckInResponse.model_validate(today_check_in) if today_check_in else None,
            total_check_ins=len(habit.check_ins),
        ))

    return HabitListResponse(habits=items, pagination=pagination)


@app.get("/api/habits/{habit_id}", response_model=HabitDetailResponse, tags=["Habits"])
def get_habit(habit_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Un hábito con sus últimos 30 check-ins y los ánimos recibidos"""
    habit = _get_habit_or_404(db, habit_id, user)

    return HabitDetailResponse(
        **HabitResponse.model_validate(habit).model_dump(),
        check_ins=[CheckInWithCheers.model_validate(c) for c in habit.check_ins[:30]],
        total_check_ins=len(habit.check_ins),
    )


@app.post("/api/habits", response_model=HabitResponse, status_code=201, tags=["Habits"])
def create_habit(data: HabitCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Crea un nuevo hábito"""
    habit = Habit(
        user_id=user.id,
        name=data.name,
        description=data.description,
        frequency_goal=data.frequency_goal,
    )
    db.add(habit)
    db.commit()
    db.refresh(habit)

    logger.info(f"➕ Hábito creado: {habit.name} (user: {user.username})")
    return habit


@app.patch("/api/habits/{habit_id}", response_model=HabitResponse, tags=["Habits"])
def update_habit(
    habit_id: int, data: HabitUpdate,
    user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    """Actualiza nombre, descripción, objetivo semanal o si está activo"""
    habit = _get_habit_or_404(db, habit_id, user)

    update_data = data.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        if key in ("name", "frequency_goal", "is_active") and value is None:
            continue
        setattr(habit, key, value)

    db.commit()
    db.refresh(habit)
    return habit


@app.delete("/api/habits/{habit_id}", tags=["Habits"])
def delete_habit(habit_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Elimina un hábito y todo su historial de check-ins"""
    habit = _get_habit_or_404(db, habit_id, user)

    db.delete(habit)
    db.commit()

    logger.info(f"🗑️ Hábito eliminado: {habit.name} (user: {user.username})")
    return {"message": f"Hábito '{habit.name}' eliminado"}


# =============================================================================
# ===================== SECCIÓN 4: CHECK-INS ==================================
# =============================================================================

@app.post(
    "/api/habits/{habit_id}/checkin",
    response_model=CheckInCreatedResponse, status_code=201, tags=["Check-ins"]
)
def check_in(
    habit_id: int,
    data: Optional[CheckInCreate] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Marca el hábito como hecho (por defecto hoy, UTC).

    Errores:
      - 404 → el hábito no existe o no es suyo
      - 400 → fecha futura o mal formada
      - 409 → ya hay check-in ese día
    """
    data = data or CheckInCreate()
    result = record_check_in(db, habit_id, user.id, day=data.date, note=data.note)

    return CheckInCreatedResponse(
        check_in=CheckInResponse.model_validate(result.check_in),
        current_streak=result.current_streak,
        longest_streak=result.longest_streak,
    )


@app.delete(
    "/api/habits/{habit_id}/checkin/{check_in_id}",
    response_model=CheckInRemovedResponse, tags=["Check-ins"]
)
def undo_check_in(
    habit_id: int, check_in_id: int,
    user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    """Deshace un check-in. El récord (longest_streak) no baja."""
    current_streak = remove_check_in(db, habit_id, check_in_id, user.id)
    return CheckInRemovedResponse(message="Check-in eliminado", current_streak=current_streak)


@app.get("/api/habits/{habit_id}/checkins", response_model=CheckInHistoryResponse, tags=["Check-ins"])
def get_check_in_history(
    habit_id: int,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=30, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Historial de check-ins de un hábito (más recientes primero)"""
    habit = _get_habit_or_404(db, habit_id, user)

    check_ins, pagination = _paginate(
        db.query(CheckIn).filter(CheckIn.habit_id == habit.id).order_by(CheckIn.date.desc()),
        page, limit
    )

    return CheckInHistoryResponse(
        check_ins=[CheckInWithCheers.model_validate(c) for c in check_ins],
        pagination=pagination,
    )


# =============================================================================
# ===================== SECCIÓN 5: FRIENDS ====================================
# =============================================================================

@app.get("/api/friends", response_model=FriendListResponse, tags=["Friends"])
def list_friends(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Amigos del usuario (la otra persona de cada amistad aceptada)"""
    friendships, pagination = _paginate(
        db.query(Friendship).filter(
            Friendship.status == FriendshipStatus.accepted.value,
            social.involving(user.id),
        ).order_by(Friendship.updated_at.desc(), Friendship.id.desc()),
        page, limit
    )

    friends = []
    for f in friendships:
        friend = social.other_party(f, user.id)
        friends.append(FriendResponse(
            **UserPublic.model_validate(friend).model_dump(),
            friendship_id=f.id,
            friends_since=f.updated_at,
        ))

    return FriendListResponse(friends=friends, pagination=pagination)


@app.get("/api/friends/requests", response_model=FriendRequestsResponse, tags=["Friends"])
def list_friend_requests(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Solicitudes pendientes: recibidas y enviadas"""
    pending = Friendship.status == FriendshipStatus.pending.value

    received = db.query(Friendship).filter(
        Friendship.addressee_id == user.id, pending
    ).order_by(Friendship.created_at.desc()).all()
    sent = db.query(Friendship).filter(
        Friendship.requester_id == user.id, pending
    ).order_by(Friendship.created_at.desc()).all()

    return FriendRequestsResponse(
        received=[
            FriendRequestItem(id=r.id, user=UserPublic.model_validate(r.requester), created_at=r.created_at)
            for r in received
        ],
        sent=[
            FriendRequestItem(id=s.id, user=UserPublic.model_validate(s.addressee), created_at=s.created_at)
            for s in sent
        ],
    )


@app.post(
    "/api/friends/request/{user_id}",
    response_model=FriendRequestSentResponse, status_code=201, tags=["Friends"]
)
def send_friend_request(
    user_id: int, response: Response,
    user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    """Envía una solicitud de amistad (o reabre una que fue rechazada)"""
    friendship, created = social.send_friend_request(db, user, user_id)
    if not created:
        response.status_code = status.HTTP_200_OK

    return FriendRequestSentResponse(
        message="Solicitud de amistad enviada",
        friendship=FriendshipResponse(
            id=friendship.id,
            user=UserPublic.model_validate(friendship.addressee),
            status=friendship.status,
            created_at=friendship.created_at,
        ),
    )


@app.post("/api/friends/accept/{friendship_id}", response_model=FriendAcceptedResponse, tags=["Friends"])
def accept_friend_request(friendship_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    friendship = social.respond_friend_request(db, user, friendship_id, accept=True)
    return FriendAcceptedResponse(
        message="Solicitud de amistad aceptada",
        friend=UserPublic.model_validate(friendship.requester),
    )


@app.post("/api/friends/decline/{friendship_id}", tags=["Friends"])
def decline_friend_request(friendship_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    social.respond_friend_request(db, user, friendship_id, accept=False)
    return {"message": "Solicitud de amistad rechazada"}


@app.delete("/api/friends/{friendship_id}", tags=["Friends"])
def remove_friend(friendship_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    social.remove_friend(db, user, friendship_id)
    return {"message": "Amigo eliminado"}


# =============================================================================
# ===================== SECCIÓN 6: SOCIAL =====================================
# =============================================================================

@app.get("/api/social/feed", response_model=FeedResponse, tags=["Social"])
def get_feed(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Actividad reciente de los amigos: sus check-ins con los ánimos recibidos"""
    ids = social.friend_ids(db, user.id)
    if not ids:
        return FeedResponse(activities=[], pagination=_pagination(page, limit, 0))

    check_ins, pagination = _paginate(
        db.query(CheckIn).filter(CheckIn.user_id.in_(ids))
        .order_by(CheckIn.created_at.desc(), CheckIn.id.desc()),
        page, limit
    )

    activities = [
        FeedActivity(
            id=c.id,
            user=UserPublic.model_validate(c.user),
            habit=FeedHabit.model_validate(c.habit),
            date=c.date,
            note=c.note,
            created_at=c.created_at,
            cheers=[CheerResponse.model_validate(ch) for ch in c.cheers],
            cheer_count=len(c.cheers),
            has_cheered=any(ch.giver_id == user.id for ch in c.cheers),
        )
        for c in check_ins
    ]

    return FeedResponse(activities=activities, pagination=pagination)


@app.post("/api/social/cheer/{check_in_id}", response_model=CheerResponse, status_code=201, tags=["Social"])
def cheer_check_in(
    check_in_id: int,
    data: Optional[CheerCreate] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Anima el check-in de un amigo"""
    emoji = data.emoji if data else None
    return social.add_cheer(db, user, check_in_id, emoji)


@app.delete("/api/social/cheer/{check_in_id}", tags=["Social"])
def remove_cheer(check_in_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    social.remove_cheer(db, user, check_in_id)
    return {"message": "Ánimo eliminado"}


@app.get("/api/social/leaderboard", response_model=LeaderboardResponse, tags=["Social"])
def get_leaderboard(
    scope: str = Query(default="friends", pattern="^(friends|global)$"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Ranking por suma de rachas actuales de hábitos activos.
    scope=friends → usted y sus amigos; scope=global → todos.
    """
    entries = social.build_leaderboard(db, user, scope)

    start = (page - 1) * limit
    current_user_rank = next((e["rank"] for e in entries if e["is_current_user"]), 0)

    return LeaderboardResponse(
        leaderboard=[LeaderboardEntry(**e) for e in entries[start:start + limit]],
        current_user_rank=current_user_rank,
        pagination=_pagination(page, limit, len(entries)),
    )


@app.get("/api/social/cheers", response_model=ReceivedCheersResponse, tags=["Social"])
def get_received_cheers(
    since: Optional[datetime] = Query(default=None, description="Solo ánimos posteriores a esta fecha"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Ánimos recibidos (más recientes primero).
    El cliente puede consultar periódicamente con `since` = último visto.
    """
    query = db.query(Cheer).filter(Cheer.receiver_id == user.id)
    if since is not None:
        # created_at se guarda en UTC sin zona
        if since.tzinfo is not None:
            since = since.astimezone(timezone.utc).replace(tzinfo=None)
        query = query.filter(Cheer.created_at > since)

    cheers, pagination = _paginate(
        query.order_by(Cheer.created_at.desc(), Cheer.id.desc()), page, limit
    )

    return ReceivedCheersResponse(
        cheers=[ReceivedCheer.model_validate(c) for c in cheers],
        pagination=pagination,
    )
